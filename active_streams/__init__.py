"""
Active Streams Package

A Python package for fetching the currently playing sessions of Plex, Emby
and Jellyfin servers and merging them into one list of active streams.
"""

from active_streams.adapters import get_adapter
from active_streams.fetcher import StreamFetcher
from active_streams.models import (
    DisplayOptions,
    FetchError,
    FetchResult,
    PlaybackState,
    ServerDescriptor,
    ServerType,
    Stream,
)
from active_streams.presentation import build_streams_view, format_time

__version__ = "0.1.0"
__all__ = [
    "StreamFetcher",
    "ServerDescriptor",
    "ServerType",
    "DisplayOptions",
    "Stream",
    "PlaybackState",
    "FetchError",
    "FetchResult",
    "get_adapter",
    "build_streams_view",
    "format_time",
]
