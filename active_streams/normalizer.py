"""
Stream normalization for Plex and Emby/Jellyfin session payloads.

These functions are pure: they take the decoded JSON body of one server and
return normalized Stream records. Missing or malformed fields fall back to
defaults ("Unknown", 0) rather than raising, so a single odd session never
hides the rest of a server's activity.
"""

import math
from typing import Any, Optional

from active_streams.models import DisplayOptions, PlaybackState, ServerType, Stream
from active_streams.schemas import (
    EmbyMediaStream,
    EmbySession,
    EmbyTranscodingInfo,
    PlexMedia,
    PlexSession,
    PlexTranscodeSession,
)

UNKNOWN = 'Unknown'

PLEX_MS_PER_SECOND = 1000
TICKS_PER_SECOND = 10_000_000

# Plex decisions other than "transcode"
DIRECT_DECISION_LABELS = {
    'copy': 'Direct Stream',
    'directstream': 'Direct Stream',
    'directplay': 'Direct Play',
}

CHANNEL_LAYOUTS = {
    1: '1.0',
    2: '2.0',
    3: '2.1',
    6: '5.1',
    7: '6.1',
    8: '7.1',
}


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(*values: Any, default: str = UNKNOWN) -> str:
    """Return the first non-empty value as a string, or the default."""
    for value in values:
        if value is None:
            continue
        text = str(value)
        if text.strip():
            return text
    return default


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _seconds(value: Any, divisor: int) -> float:
    """Convert a server time unit to seconds, clamped at zero."""
    number = _to_float(value)
    if number is None:
        return 0.0
    return max(0.0, number / divisor)


def _upper(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text.upper() or None


def _pad2(value: Any) -> str:
    number = _to_int(value)
    if number is None:
        return str(value).rjust(2, '0')
    return f"{number:02d}"


# ---------------------------------------------------------------------------
# Display formatting shared by both normalizers
# ---------------------------------------------------------------------------

def format_bitrate(kbps: Any) -> Optional[str]:
    """Format a bitrate in kbps as '12.3 Mbps' or '800 kbps'."""
    value = _to_float(kbps)
    if value is None or value <= 0:
        return None
    if value >= 1000:
        return f"{value / 1000:.1f} Mbps"
    return f"{int(value)} kbps"


def format_channels(channels: Any) -> Optional[str]:
    """Format an audio channel count as a speaker layout (2 -> '2.0', 6 -> '5.1')."""
    count = _to_int(channels)
    if count is None or count <= 0:
        return None
    return CHANNEL_LAYOUTS.get(count, f"{count}ch")


def format_plex_resolution(value: Any) -> Optional[str]:
    """Format a Plex videoResolution ('1080', '4k', 'sd')."""
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    if text in ('4k', '2160', '2160p'):
        return '4K'
    if text == 'sd':
        return 'SD'
    if text.isdigit():
        return f"{text}p"
    return text


def format_height_resolution(height: Any) -> Optional[str]:
    """Format a video height in pixels (Emby/Jellyfin MediaStreams)."""
    value = _to_int(height)
    if value is None or value <= 0:
        return None
    if value >= 2000:
        return '4K'
    if value < 576:
        return 'SD'
    return f"{value}p"


def _with_suffix(label: str, suffix: Optional[str]) -> str:
    return f"{label} {suffix}" if suffix else label


def _video_line(resolution: Optional[str], source: str, target: str, hardware: bool) -> str:
    label = f"{resolution} {source}" if resolution else source
    line = f"Video: {label} → {target}"
    if hardware:
        line += " [HW]"
    return line


def _stream_line(container: Optional[str], bitrate: Optional[str], target: Optional[str]) -> str:
    source = container or UNKNOWN
    if bitrate:
        source = f"{source}({bitrate})"
    return f"Stream: {source} → {target or UNKNOWN}"


# ---------------------------------------------------------------------------
# Plex
# ---------------------------------------------------------------------------

def build_plex_title(session: PlexSession, show_episode_numbers: bool = False) -> str:
    """
    Build the display title for a Plex session.

    Episodes render as "Show - Episode", or "Show - S1E5 - Episode" when
    episode numbering is enabled and both indexes are present.
    """
    show_name = session.get('grandparentTitle')
    if show_name is None:
        return _text(session.get('title'))

    episode_name = _text(session.get('title'), default='')
    season = session.get('parentIndex')
    episode = session.get('index')
    if show_episode_numbers and season is not None and episode is not None:
        return f"{show_name} - S{season}E{episode} - {episode_name}"
    return f"{show_name} - {episode_name}"


def is_plex_transcoding(session: PlexSession) -> bool:
    transcode = _as_dict(session.get('TranscodeSession'))
    return (
        transcode.get('videoDecision') == 'transcode'
        or transcode.get('audioDecision') == 'transcode'
    )


def _plex_direct_label(decision: str) -> str:
    return DIRECT_DECISION_LABELS.get(decision, f"Direct {decision.capitalize()}")


def _plex_hardware(transcode: PlexTranscodeSession) -> bool:
    return bool(
        transcode.get('transcodeHwEncoding')
        or transcode.get('transcodeHwDecoding')
        or transcode.get('transcodeHwFullPipeline') is True
    )


def _plex_stream_detail(transcode: PlexTranscodeSession, media: PlexMedia) -> str:
    line = _stream_line(
        _upper(media.get('container')),
        format_bitrate(media.get('bitrate')),
        _upper(transcode.get('container')),
    )
    speed = _to_float(transcode.get('speed'))
    if transcode.get('throttled') is True:
        line += " (throttled)"
    elif speed is not None:
        line += f" ({speed:.1f}×)"
    return line


def _plex_video_detail(transcode: PlexTranscodeSession, media: PlexMedia) -> Optional[str]:
    decision = str(transcode.get('videoDecision') or '').strip().lower()
    if not decision:
        return None
    if decision != 'transcode':
        return f"Video: {_plex_direct_label(decision)}"
    return _video_line(
        format_plex_resolution(media.get('videoResolution')),
        _upper(transcode.get('sourceVideoCodec') or media.get('videoCodec')) or UNKNOWN,
        _upper(transcode.get('videoCodec')) or UNKNOWN,
        _plex_hardware(transcode),
    )


def _plex_audio_detail(transcode: PlexTranscodeSession, media: PlexMedia) -> Optional[str]:
    decision = str(transcode.get('audioDecision') or '').strip().lower()
    if not decision:
        return None
    if decision != 'transcode':
        return f"Audio: {_plex_direct_label(decision)}"
    source = _with_suffix(
        _upper(transcode.get('sourceAudioCodec') or media.get('audioCodec')) or UNKNOWN,
        format_channels(media.get('audioChannels')),
    )
    target = _with_suffix(
        _upper(transcode.get('audioCodec')) or UNKNOWN,
        format_channels(transcode.get('audioChannels')),
    )
    return f"Audio: {source} → {target}"


def build_plex_transcode_details(session: PlexSession) -> list[str]:
    """Describe the container, video and audio transitions of a Plex transcode."""
    transcode: PlexTranscodeSession = _as_dict(session.get('TranscodeSession'))
    media_items = _as_list(session.get('Media'))
    media: PlexMedia = _as_dict(media_items[0]) if media_items else {}

    details = [_plex_stream_detail(transcode, media)]
    for line in (_plex_video_detail(transcode, media), _plex_audio_detail(transcode, media)):
        if line:
            details.append(line)
    return details


def normalize_plex_session(
    session: PlexSession,
    server_name: str,
    options: DisplayOptions = DisplayOptions(),
) -> Stream:
    """Normalize one entry of MediaContainer.Metadata."""
    user = _as_dict(session.get('User'))
    player = _as_dict(session.get('Player'))
    transcoding = is_plex_transcoding(session)

    return Stream(
        server_name=server_name,
        server_type=ServerType.PLEX.value,
        title=build_plex_title(session, options.show_episode_numbers),
        user=_text(user.get('title')),
        device=_text(player.get('device'), player.get('product')),
        state=PlaybackState.PAUSED if player.get('state') == 'paused' else PlaybackState.PLAYING,
        progress_seconds=_seconds(session.get('viewOffset'), PLEX_MS_PER_SECOND),
        duration_seconds=_seconds(session.get('duration'), PLEX_MS_PER_SECOND),
        is_transcoding=transcoding,
        transcode_details=build_plex_transcode_details(session) if transcoding else [],
    )


def normalize_plex_sessions(
    payload: Any,
    server_name: str,
    options: DisplayOptions = DisplayOptions(),
) -> list[Stream]:
    """
    Normalize a Plex /status/sessions response.

    Args:
        payload: Decoded JSON body
        server_name: Display name of the server the payload came from
        options: Display options (episode numbering)

    Returns:
        One Stream per session; an absent MediaContainer.Metadata yields []
    """
    container = _as_dict(_as_dict(payload).get('MediaContainer'))
    return [
        normalize_plex_session(session, server_name, options)
        for session in _as_list(container.get('Metadata'))
        if isinstance(session, dict)
    ]


# ---------------------------------------------------------------------------
# Emby / Jellyfin
# ---------------------------------------------------------------------------

def build_emby_title(item: dict, show_episode_numbers: bool = False) -> str:
    """
    Build the display title for an Emby/Jellyfin NowPlayingItem.

    Season and episode numbers are zero-padded to two digits (S01E05).
    """
    episode_name = _text(item.get('Name'))
    series_name = item.get('SeriesName')
    if series_name is None:
        return episode_name

    season = item.get('ParentIndexNumber')
    episode = item.get('IndexNumber')
    if show_episode_numbers and season is not None and episode is not None:
        return f"{series_name} - S{_pad2(season)}E{_pad2(episode)} - {episode_name}"
    return f"{series_name} - {episode_name}"


def is_emby_transcoding(session: EmbySession) -> bool:
    """
    A session transcodes when the play method is Transcode and at least one
    of video or audio is not passed through. A remux with both streams
    direct only repackages the container and does not count.
    """
    play_state = _as_dict(session.get('PlayState'))
    if play_state.get('PlayMethod') != 'Transcode':
        return False
    info = _as_dict(session.get('TranscodingInfo'))
    return not (info.get('IsVideoDirect') is True and info.get('IsAudioDirect') is True)


def _first_media_stream(item: dict, stream_type: str) -> EmbyMediaStream:
    for media_stream in _as_list(item.get('MediaStreams')):
        if isinstance(media_stream, dict) and media_stream.get('Type') == stream_type:
            return media_stream
    return {}


def _emby_reasons(info: EmbyTranscodingInfo) -> list[str]:
    reasons = info.get('TranscodeReasons')
    if isinstance(reasons, str):
        reasons = reasons.split(',')
    return [str(r).strip() for r in _as_list(reasons) if str(r).strip()]


def build_emby_transcode_details(session: EmbySession) -> list[str]:
    """Describe the container, video and audio transitions of an Emby/Jellyfin transcode."""
    info: EmbyTranscodingInfo = _as_dict(session.get('TranscodingInfo'))
    if not info:
        return []
    item = _as_dict(session.get('NowPlayingItem'))
    video_source = _first_media_stream(item, 'Video')
    audio_source = _first_media_stream(item, 'Audio')

    source_bitrate = _to_float(item.get('Bitrate'))
    details = [
        _stream_line(
            _upper(item.get('Container')),
            format_bitrate(source_bitrate / 1000 if source_bitrate is not None else None),
            _upper(info.get('Container')),
        )
    ]

    if info.get('IsVideoDirect') is True:
        details.append("Video: Direct Stream")
    elif video_source or info.get('VideoCodec'):
        details.append(_video_line(
            format_height_resolution(video_source.get('Height')),
            _upper(video_source.get('Codec')) or UNKNOWN,
            _upper(info.get('VideoCodec')) or UNKNOWN,
            bool(info.get('HardwareAccelerationType')),
        ))

    if info.get('IsAudioDirect') is True:
        details.append("Audio: Direct Stream")
    elif audio_source or info.get('AudioCodec'):
        source = _with_suffix(
            _upper(audio_source.get('Codec')) or UNKNOWN,
            format_channels(audio_source.get('Channels')),
        )
        target = _with_suffix(
            _upper(info.get('AudioCodec')) or UNKNOWN,
            format_channels(info.get('AudioChannels')),
        )
        details.append(f"Audio: {source} → {target}")

    reasons = _emby_reasons(info)
    if reasons:
        details.append(f"Reason: {', '.join(reasons)}")

    return details


def normalize_emby_session(
    session: EmbySession,
    server_name: str,
    server_type: str = ServerType.EMBY.value,
    options: DisplayOptions = DisplayOptions(),
) -> Optional[Stream]:
    """Normalize one Emby/Jellyfin session; idle sessions return None."""
    item = session.get('NowPlayingItem')
    if not isinstance(item, dict):
        return None

    play_state = _as_dict(session.get('PlayState'))
    transcoding = is_emby_transcoding(session)

    return Stream(
        server_name=server_name,
        server_type=server_type,
        title=build_emby_title(item, options.show_episode_numbers),
        user=_text(session.get('UserName')),
        device=_text(session.get('DeviceName')),
        state=PlaybackState.PAUSED if play_state.get('IsPaused') is True else PlaybackState.PLAYING,
        progress_seconds=_seconds(play_state.get('PositionTicks'), TICKS_PER_SECOND),
        duration_seconds=_seconds(item.get('RunTimeTicks'), TICKS_PER_SECOND),
        is_transcoding=transcoding,
        transcode_details=build_emby_transcode_details(session) if transcoding else [],
    )


def normalize_emby_sessions(
    payload: Any,
    server_name: str,
    server_type: str = ServerType.EMBY.value,
    options: DisplayOptions = DisplayOptions(),
) -> list[Stream]:
    """
    Normalize an Emby /emby/Sessions or Jellyfin /Sessions response.

    Args:
        payload: Decoded JSON body (a top-level array of sessions)
        server_name: Display name of the server the payload came from
        server_type: 'emby' or 'jellyfin'
        options: Display options (episode numbering)

    Returns:
        One Stream per session with a NowPlayingItem
    """
    streams = []
    for session in _as_list(payload):
        if not isinstance(session, dict):
            continue
        stream = normalize_emby_session(session, server_name, server_type, options)
        if stream is not None:
            streams.append(stream)
    return streams
