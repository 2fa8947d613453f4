"""
Service for fetching the current streams of all configured servers.
"""
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from active_streams.fetcher import ConnectionCheck, StreamFetcher
from active_streams.logging_utils import get_logger
from active_streams.models import FetchResult, ServerDescriptor
from active_streams.presentation import StreamsView, build_streams_view, registry_unavailable_view
from flask_app.services.config_service import ConfigService

logger = get_logger("web.streams")


class StreamService:
    """Runs one fetch cycle against the registry stored in the database."""

    def __init__(self, fetcher: Optional[StreamFetcher] = None):
        self.fetcher = fetcher or StreamFetcher()

    def get_current_streams(self) -> Tuple[StreamsView, Optional[FetchResult]]:
        """
        Fetch all active streams.

        Returns:
            Tuple of (view, result). result is None when no fetch happened
            (registry unavailable or empty).
        """
        try:
            servers = ConfigService.get_server_descriptors()
            options = ConfigService.get_display_options()
        except SQLAlchemyError:
            logger.exception("Could not read the server registry")
            return registry_unavailable_view(), None

        if not servers:
            return build_streams_view(None, 0), None

        result = self.fetcher.fetch_all(servers, options)
        return build_streams_view(result, len(servers)), result

    def check_connection(self, descriptor: ServerDescriptor) -> ConnectionCheck:
        """Test connectivity for a server that may not be saved yet."""
        return self.fetcher.check_connection(descriptor)
