"""
CORS Configuration
Centralized CORS settings for the application
"""

CORS_CONFIG = {
    "origins": "*",
    "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    "allow_headers": [
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Accept",
    ],
    "expose_headers": ["Content-Type"],
    "supports_credentials": False,
    "max_age": 86400,  # 24 hours
}


def init_cors(app):
    """
    Initialize CORS for the Flask application
    """
    from flask_cors import CORS

    origins = app.config.get("CORS_ORIGINS", CORS_CONFIG["origins"])
    CORS(app,
         resources={r"/api/*": {"origins": origins}},
         methods=CORS_CONFIG["methods"],
         allow_headers=CORS_CONFIG["allow_headers"],
         expose_headers=CORS_CONFIG["expose_headers"],
         supports_credentials=CORS_CONFIG["supports_credentials"],
         max_age=CORS_CONFIG["max_age"])

    app.logger.info("CORS enabled for origins: %s", origins)
