import os
from datetime import timedelta

class Config:
    # Environment
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    PERMANENT_SESSION_LIFETIME = timedelta(minutes=30)

    # Payment gateway connected to the DocuSign account
    PAYMENT_GATEWAY_ACCOUNT_ID = os.getenv('PAYMENT_GATEWAY_ACCOUNT_ID')
    PAYMENT_GATEWAY_NAME = os.getenv('PAYMENT_GATEWAY_NAME')
    PAYMENT_GATEWAY_DISPLAY_NAME = os.getenv('PAYMENT_GATEWAY_DISPLAY_NAME')

    # DocuSign configuration
    DOCUSIGN_MOCK_MODE = os.getenv('DOCUSIGN_MOCK_MODE', 'False').lower() == 'true'
    DOCUSIGN_TIMEOUT = float(os.getenv('DOCUSIGN_TIMEOUT', 30))

    # Reject unknown device models instead of pricing them at $0
    STRICT_DEVICE_SELECTION = os.getenv('STRICT_DEVICE_SELECTION', 'False').lower() == 'true'
