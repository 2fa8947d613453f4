"""
Typed shapes of the session payloads returned by each media server.

Every key is optional: servers omit fields freely, so the normalizer reads
them through helpers that apply an explicit default.
"""

from typing import TypedDict


# Plex: GET /status/sessions

class PlexUser(TypedDict, total=False):
    id: str
    title: str


class PlexPlayer(TypedDict, total=False):
    device: str
    product: str
    platform: str
    state: str  # playing | paused | buffering


class PlexMedia(TypedDict, total=False):
    container: str
    bitrate: int  # kbps
    videoCodec: str
    videoResolution: str  # sd | 480 | 720 | 1080 | 4k
    audioCodec: str
    audioChannels: int


class PlexTranscodeSession(TypedDict, total=False):
    throttled: bool
    speed: float
    container: str
    videoDecision: str  # transcode | copy | directplay
    audioDecision: str
    sourceVideoCodec: str
    sourceAudioCodec: str
    videoCodec: str
    audioCodec: str
    audioChannels: int
    transcodeHwRequested: bool
    transcodeHwDecoding: str
    transcodeHwEncoding: str
    transcodeHwFullPipeline: bool


class PlexSession(TypedDict, total=False):
    title: str
    grandparentTitle: str
    parentIndex: int
    index: int
    viewOffset: int  # milliseconds
    duration: int  # milliseconds
    User: PlexUser
    Player: PlexPlayer
    Media: list[PlexMedia]
    TranscodeSession: PlexTranscodeSession


class PlexMediaContainer(TypedDict, total=False):
    size: int
    Metadata: list[PlexSession]


class PlexSessionsPayload(TypedDict, total=False):
    MediaContainer: PlexMediaContainer


# Emby / Jellyfin: GET /emby/Sessions and GET /Sessions (top-level array)

class EmbyMediaStream(TypedDict, total=False):
    Type: str  # Video | Audio | Subtitle
    Codec: str
    Height: int
    Width: int
    Channels: int
    BitRate: int


class EmbyNowPlayingItem(TypedDict, total=False):
    Name: str
    SeriesName: str
    ParentIndexNumber: int
    IndexNumber: int
    RunTimeTicks: int
    Container: str
    Bitrate: int  # bits per second
    MediaStreams: list[EmbyMediaStream]


class EmbyPlayState(TypedDict, total=False):
    PositionTicks: int
    IsPaused: bool
    PlayMethod: str  # DirectPlay | DirectStream | Transcode


class EmbyTranscodingInfo(TypedDict, total=False):
    Container: str
    Bitrate: int  # bits per second
    VideoCodec: str
    AudioCodec: str
    AudioChannels: int
    IsVideoDirect: bool
    IsAudioDirect: bool
    HardwareAccelerationType: str
    TranscodeReasons: list[str]


class EmbySession(TypedDict, total=False):
    UserName: str
    DeviceName: str
    Client: str
    NowPlayingItem: EmbyNowPlayingItem
    PlayState: EmbyPlayState
    TranscodingInfo: EmbyTranscodingInfo


class EmbySystemInfo(TypedDict, total=False):
    ServerName: str
    Version: str
