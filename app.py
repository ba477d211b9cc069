import logging

from dotenv import load_dotenv

# Load .env before config.Config reads the environment
load_dotenv()

from flask import Flask
from routes import register_blueprints
from services.envelopes import TemplateLoader

def create_app(config_object='config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Fail fast on a broken template definition
    TemplateLoader.load_all()

    # Register blueprints
    register_blueprints(app)

    return app

app = create_app()

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5005, debug=True)
