"""
Flask application factory.
"""
import os
from flask import Flask
from active_streams.logging_utils import configure_logging
from active_streams.presentation import format_time, server_color

CONFIG_OBJECTS = {
    'development': 'flask_app.config.DevelopmentConfig',
    'production': 'flask_app.config.ProductionConfig',
    'testing': 'flask_app.config.TestingConfig',
}


def create_app(config_name='development'):
    """Create and configure the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_object(CONFIG_OBJECTS.get(config_name, CONFIG_OBJECTS['development']))

    configure_logging(app.config.get('LOG_LEVEL', 'INFO'))

    # Register custom Jinja filters
    app.add_template_filter(format_time, 'format_time')
    app.add_template_filter(server_color, 'server_color')

    # Ensure instance folder exists
    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass

    # Initialize extensions
    from flask_app.models import db
    db.init_app(app)

    # Register blueprints
    from flask_app.routes.main import main_bp
    from flask_app.routes.settings import settings_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(settings_bp, url_prefix='/settings')

    # Create database tables and initialize default settings
    with app.app_context():
        db.create_all()
        _initialize_default_settings()

    return app


def _initialize_default_settings():
    """Create the default DisplaySettings row if none exists."""
    from flask_app.models import db, DisplaySettings

    if DisplaySettings.query.first() is None:
        db.session.add(DisplaySettings())
        db.session.commit()
