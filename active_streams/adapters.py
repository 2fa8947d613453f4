"""
Per-server-type request builders and response normalizers.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from active_streams.models import DisplayOptions, ServerDescriptor, ServerType, Stream
from active_streams.normalizer import normalize_emby_sessions, normalize_plex_sessions


class UnsupportedServerTypeError(ValueError):
    """Raised when no adapter is registered for a server type."""


@dataclass(frozen=True)
class ServerRequest:
    """An HTTP GET request target for one server."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    verify: bool = True


class MediaServerAdapter:
    """Base class for media server adapters."""

    server_type: ServerType
    sessions_path: str
    info_path: str

    def build_request(self, server: ServerDescriptor) -> ServerRequest:
        """Build the request for the "list active sessions" endpoint."""
        return self._request(server, self.sessions_path)

    def build_info_request(self, server: ServerDescriptor) -> ServerRequest:
        """Build the request used to verify connectivity and credentials."""
        return self._request(server, self.info_path)

    def normalize(
        self,
        payload: Any,
        server: ServerDescriptor,
        options: DisplayOptions = DisplayOptions(),
    ) -> list[Stream]:
        """Map a decoded response body into Stream records."""
        raise NotImplementedError

    def describe(self, payload: Any) -> Optional[str]:
        """Friendly server name found in an info response, if any."""
        return None

    def _request(self, server: ServerDescriptor, path: str) -> ServerRequest:
        return ServerRequest(
            url=f"{server.base_url}{path}",
            headers=self._headers(server),
            verify=server.verify_ssl if server.use_ssl else True,
        )

    def _headers(self, server: ServerDescriptor) -> dict[str, str]:
        return {}


class PlexAdapter(MediaServerAdapter):
    server_type = ServerType.PLEX
    sessions_path = '/status/sessions'
    info_path = '/status/sessions'

    def _request(self, server: ServerDescriptor, path: str) -> ServerRequest:
        request = super()._request(server, path)
        return ServerRequest(
            url=f"{request.url}?X-Plex-Token={server.token}",
            headers=request.headers,
            verify=request.verify,
        )

    def _headers(self, server: ServerDescriptor) -> dict[str, str]:
        return {
            'Accept': 'application/json',
            'X-Plex-Token': server.token,
        }

    def normalize(self, payload, server, options=DisplayOptions()):
        return normalize_plex_sessions(payload, server.name, options)

    def describe(self, payload):
        if isinstance(payload, dict) and 'MediaContainer' in payload:
            return 'Plex Server'
        return None


class EmbyAdapter(MediaServerAdapter):
    server_type = ServerType.EMBY
    sessions_path = '/emby/Sessions'
    info_path = '/emby/System/Info'

    def _request(self, server: ServerDescriptor, path: str) -> ServerRequest:
        request = super()._request(server, path)
        return ServerRequest(
            url=f"{request.url}?api_key={server.token}",
            headers=request.headers,
            verify=request.verify,
        )

    def normalize(self, payload, server, options=DisplayOptions()):
        return normalize_emby_sessions(payload, server.name, self.server_type.value, options)

    def describe(self, payload):
        if isinstance(payload, dict) and payload.get('ServerName'):
            return str(payload['ServerName'])
        return None


class JellyfinAdapter(EmbyAdapter):
    """Jellyfin shares the Emby session schema but authenticates by header."""

    server_type = ServerType.JELLYFIN
    sessions_path = '/Sessions'
    info_path = '/System/Info'

    def _request(self, server: ServerDescriptor, path: str) -> ServerRequest:
        return MediaServerAdapter._request(self, server, path)

    def _headers(self, server: ServerDescriptor) -> dict[str, str]:
        return {'X-Emby-Token': server.token}


ADAPTERS: dict[ServerType, MediaServerAdapter] = {
    adapter.server_type: adapter
    for adapter in (PlexAdapter(), EmbyAdapter(), JellyfinAdapter())
}


def get_adapter(server_type: Any) -> MediaServerAdapter:
    """
    Look up the adapter for a server type.

    Args:
        server_type: ServerType or raw type string (case-insensitive)

    Raises:
        UnsupportedServerTypeError: If the type is unknown
    """
    parsed = ServerType.parse(server_type)
    if parsed is None or parsed not in ADAPTERS:
        raise UnsupportedServerTypeError(f"Unsupported server type: {server_type}")
    return ADAPTERS[parsed]
