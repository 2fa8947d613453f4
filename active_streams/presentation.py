"""
Aggregation of fetch results into a display model, plus time formatting.

The view model is rendered to HTML by the Flask templates and to plain text
by render_text() for the console report.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from active_streams.models import FetchError, FetchResult, Stream

SERVER_TYPE_COLORS = {
    'plex': '#e5a00d',
    'emby': '#52b54b',
    'jellyfin': '#00a4dc',
}
DEFAULT_SERVER_COLOR = '#888'

PLAYING_COLOR = '#8cc43c'
PAUSED_COLOR = '#f0ad4e'
TRANSCODE_COLOR = '#e5a00d'

NO_SERVERS_MESSAGE = 'No servers configured. Please add a server in settings.'
REGISTRY_UNAVAILABLE_MESSAGE = 'Error loading server configuration. Please check settings.'
IDLE_MESSAGE = 'No active streams'

# View states
STATE_NO_SERVERS = 'no_servers'
STATE_UNAVAILABLE = 'unavailable'
STATE_IDLE = 'idle'
STATE_ERRORS = 'errors'
STATE_STREAMS = 'streams'


def format_time(seconds: Any) -> str:
    """
    Format a duration as H:MM:SS, or M:SS under an hour.

    Negative and non-numeric values render as 0:00; fractions are truncated.
    """
    try:
        total = max(0, int(float(seconds)))
    except (TypeError, ValueError, OverflowError):
        total = 0

    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def server_color(server_type: str) -> str:
    return SERVER_TYPE_COLORS.get((server_type or '').lower(), DEFAULT_SERVER_COLOR)


@dataclass
class StreamRow:
    """One rendered row of the active streams list."""

    server_name: str
    server_type: str
    server_color: str
    title: str
    user: str
    device: str
    is_paused: bool
    status_color: str
    status_icon: str
    time_display: str
    is_transcoding: bool
    transcode_tooltip: str

    @classmethod
    def from_stream(cls, stream: Stream) -> 'StreamRow':
        tooltip = ''
        if stream.is_transcoding:
            tooltip = '\n'.join(stream.transcode_details) or 'Transcoding'

        return cls(
            server_name=stream.server_name,
            server_type=stream.server_type,
            server_color=server_color(stream.server_type),
            title=stream.title,
            user=stream.user,
            device=stream.device,
            is_paused=stream.is_paused,
            status_color=PAUSED_COLOR if stream.is_paused else PLAYING_COLOR,
            status_icon='fa-pause' if stream.is_paused else 'fa-play',
            time_display=f"{format_time(stream.progress_seconds)} / {format_time(stream.duration_seconds)}",
            is_transcoding=stream.is_transcoding,
            transcode_tooltip=tooltip,
        )


@dataclass
class StreamsView:
    """Everything a renderer needs to draw the active streams widget."""

    state: str
    message: str = ''
    rows: list[StreamRow] = field(default_factory=list)
    errors: list[FetchError] = field(default_factory=list)

    @property
    def is_informational(self) -> bool:
        return self.state in (STATE_NO_SERVERS, STATE_UNAVAILABLE, STATE_IDLE)


def build_streams_view(result: Optional[FetchResult], server_count: int) -> StreamsView:
    """
    Aggregate a fetch result into the view shown to users.

    Args:
        result: Fetch result (None when nothing was fetched)
        server_count: Number of servers in the registry snapshot

    Returns:
        StreamsView in one of the no_servers / idle / errors / streams states
    """
    if server_count <= 0:
        return StreamsView(state=STATE_NO_SERVERS, message=NO_SERVERS_MESSAGE)
    result = result or FetchResult()

    if not result.streams:
        if result.errors:
            return StreamsView(
                state=STATE_ERRORS,
                message=', '.join(str(error) for error in result.errors),
                errors=list(result.errors),
            )
        return StreamsView(state=STATE_IDLE, message=IDLE_MESSAGE)

    return StreamsView(
        state=STATE_STREAMS,
        rows=[StreamRow.from_stream(stream) for stream in result.streams],
        errors=list(result.errors),
    )


def registry_unavailable_view() -> StreamsView:
    return StreamsView(state=STATE_UNAVAILABLE, message=REGISTRY_UNAVAILABLE_MESSAGE)


def render_text(view: StreamsView) -> str:
    """Render a StreamsView as plain text, one line per stream."""
    if view.state != STATE_STREAMS:
        return view.message

    lines = []
    for row in view.rows:
        status = 'paused' if row.is_paused else 'playing'
        transcode = ' [transcode]' if row.is_transcoding else ''
        lines.append(
            f"[{row.server_name} ({row.server_type})] {row.title} | {row.device} | "
            f"{row.user} | {status} {row.time_display}{transcode}"
        )
        if row.is_transcoding:
            lines.extend(f"    {detail}" for detail in row.transcode_tooltip.split('\n'))
    for error in view.errors:
        lines.append(f"! {error}")
    return '\n'.join(lines)
