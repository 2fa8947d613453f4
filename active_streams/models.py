"""
Data models for servers, streams and fetch results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ServerType(str, Enum):
    """Supported media server flavours."""

    PLEX = 'plex'
    EMBY = 'emby'
    JELLYFIN = 'jellyfin'

    @classmethod
    def parse(cls, value: Any) -> Optional['ServerType']:
        """Return the matching ServerType, or None for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or '').strip().lower())
        except ValueError:
            return None


class PlaybackState(str, Enum):
    """Playback state of a session."""

    PLAYING = 'playing'
    PAUSED = 'paused'


@dataclass(frozen=True)
class ServerDescriptor:
    """Configuration for a single media server."""

    type: str
    name: str
    host: str
    port: int
    token: str
    use_ssl: bool = False
    verify_ssl: bool = True

    @property
    def server_type(self) -> Optional[ServerType]:
        return ServerType.parse(self.type)

    @property
    def scheme(self) -> str:
        return "https" if self.use_ssl else "http"

    @property
    def base_url(self) -> str:
        """Get the base URL for API requests."""
        host = self.host
        # IPv6 literals need brackets inside a URL
        if ':' in host and not host.startswith('['):
            host = f"[{host}]"
        return f"{self.scheme}://{host}:{self.port}"

    def __repr__(self) -> str:
        """String representation with masked token."""
        masked_token = f"{self.token[:4]}...{self.token[-4:]}" if len(self.token) > 8 else "***"
        return (
            f"ServerDescriptor(type='{self.type}', name='{self.name}', host='{self.host}', "
            f"port={self.port}, token='{masked_token}', use_ssl={self.use_ssl}, "
            f"verify_ssl={self.verify_ssl})"
        )


@dataclass(frozen=True)
class DisplayOptions:
    """Display options that influence normalization."""

    show_episode_numbers: bool = False


@dataclass
class Stream:
    """A normalized, presentation-ready playback session."""

    server_name: str
    server_type: str
    title: str = 'Unknown'
    user: str = 'Unknown'
    device: str = 'Unknown'
    state: PlaybackState = PlaybackState.PLAYING
    progress_seconds: float = 0.0
    duration_seconds: float = 0.0
    is_transcoding: bool = False
    transcode_details: list[str] = field(default_factory=list)

    @property
    def is_paused(self) -> bool:
        return self.state == PlaybackState.PAUSED

    def to_dict(self) -> dict[str, Any]:
        return {
            'server_name': self.server_name,
            'server_type': self.server_type,
            'title': self.title,
            'user': self.user,
            'device': self.device,
            'state': self.state.value,
            'progress': self.progress_seconds,
            'duration': self.duration_seconds,
            'transcoding': self.is_transcoding,
            'transcode_details': list(self.transcode_details),
        }


@dataclass(frozen=True)
class FetchError:
    """A per-server failure collected during a fetch cycle."""

    server_name: str
    message: str

    def __str__(self) -> str:
        return f"{self.server_name}: {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {'server_name': self.server_name, 'message': self.message}


@dataclass
class FetchResult:
    """Streams and errors of one fetch cycle, in registry order."""

    streams: list[Stream] = field(default_factory=list)
    errors: list[FetchError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            'streams': [s.to_dict() for s in self.streams],
            'errors': [e.to_dict() for e in self.errors],
        }
