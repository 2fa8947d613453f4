"""
Configuration service for managing database-driven configuration.
"""
from typing import List
from active_streams.models import DisplayOptions, ServerDescriptor
from flask_app.models import db, ServerConfig, DisplaySettings


class ConfigService:
    """Service for managing configuration from database."""

    @staticmethod
    def get_active_servers() -> List[ServerConfig]:
        """Get all active servers ordered by server_order, then creation order."""
        return ServerConfig.query.filter_by(is_active=True).order_by(
            ServerConfig.server_order, ServerConfig.id
        ).all()

    @staticmethod
    def get_server_descriptors() -> List[ServerDescriptor]:
        """
        Get an immutable snapshot of the registry for one fetch cycle.

        Returns:
            List of active_streams.models.ServerDescriptor in display order
        """
        return [server.to_descriptor() for server in ConfigService.get_active_servers()]

    @staticmethod
    def get_display_options() -> DisplayOptions:
        """Get display settings in active_streams format."""
        settings = DisplaySettings.query.first()
        return settings.to_display_options() if settings else DisplayOptions()

    @staticmethod
    def next_server_order() -> int:
        """Order value that places a new server after all existing ones."""
        last = ServerConfig.query.order_by(ServerConfig.server_order.desc()).first()
        return (last.server_order or 0) + 1 if last else 0

    @staticmethod
    def create_or_update_server(descriptor: ServerDescriptor, order: int):
        """
        Create or update server from an active_streams ServerDescriptor.

        Args:
            descriptor: active_streams.models.ServerDescriptor object
            order: Display position of the server
        """
        server = ServerConfig.query.filter_by(name=descriptor.name).first()

        if server:
            server.server_type = descriptor.type
            server.host = descriptor.host
            server.port = descriptor.port
            server.token = descriptor.token
            server.use_ssl = descriptor.use_ssl
            server.verify_ssl = descriptor.verify_ssl
            server.server_order = order
        else:
            server = ServerConfig(
                server_type=descriptor.type,
                name=descriptor.name,
                host=descriptor.host,
                port=descriptor.port,
                token=descriptor.token,
                use_ssl=descriptor.use_ssl,
                verify_ssl=descriptor.verify_ssl,
                server_order=order
            )
            db.session.add(server)

        db.session.commit()

    @staticmethod
    def update_display_options(options: DisplayOptions):
        """
        Update display settings from active_streams DisplayOptions.

        Args:
            options: active_streams.models.DisplayOptions object
        """
        settings = DisplaySettings.query.first()

        if not settings:
            settings = DisplaySettings()
            db.session.add(settings)

        settings.show_episode_numbers = options.show_episode_numbers

        db.session.commit()
