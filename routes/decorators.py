# routes/decorators.py
"""
Shared decorators for DocuSign-backed routes.
"""

from functools import wraps
from flask import jsonify, session
from services.envelopes import SessionContext


def docusign_session_required(f):
    """Decorator to check the session carries a DocuSign token, base path and account."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if SessionContext.from_session(session) is None:
            return jsonify({'success': False, 'error': 'DocuSign session expired. Please log in again.'}), 401
        return f(*args, **kwargs)
    return decorated_function
