"""
Database models for Flask application.
"""
from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()


class ServerConfig(db.Model):
    """Media server configuration stored in database."""
    __tablename__ = 'server_configs'

    id = db.Column(db.Integer, primary_key=True)
    server_type = db.Column(db.String(20), nullable=False, default='plex')  # plex, emby, jellyfin
    name = db.Column(db.String(100), nullable=False)
    host = db.Column(db.String(255), nullable=False)
    port = db.Column(db.Integer, nullable=False)
    token = db.Column(db.String(255), nullable=False)
    use_ssl = db.Column(db.Boolean, default=False)
    verify_ssl = db.Column(db.Boolean, default=True)
    is_active = db.Column(db.Boolean, default=True)
    server_order = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_descriptor(self):
        """Convert to active_streams.models.ServerDescriptor"""
        from active_streams.models import ServerDescriptor
        return ServerDescriptor(
            type=self.server_type,
            name=self.name,
            host=self.host,
            port=self.port,
            token=self.token,
            use_ssl=bool(self.use_ssl),
            verify_ssl=bool(self.verify_ssl)
        )


class DisplaySettings(db.Model):
    """Display settings (singleton table)."""
    __tablename__ = 'display_settings'

    id = db.Column(db.Integer, primary_key=True)
    show_episode_numbers = db.Column(db.Boolean, default=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_display_options(self):
        """Convert to active_streams.models.DisplayOptions"""
        from active_streams.models import DisplayOptions
        return DisplayOptions(show_episode_numbers=bool(self.show_episode_numbers))
