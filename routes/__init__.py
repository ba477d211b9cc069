from .purchase import purchase_bp

def register_blueprints(app):
    app.register_blueprint(purchase_bp)
