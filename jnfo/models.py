from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Upstream records. Jellyfin uses PascalCase keys; unknown keys are ignored.


class UpstreamModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MediaItem(UpstreamModel):
    """Any item returned by Jellyfin. Subclasses carry per-type fields."""

    id: str = Field(alias="Id")
    name: str = Field("", alias="Name")
    type: str = Field("", alias="Type")
    production_year: Optional[int] = Field(None, alias="ProductionYear")
    run_time_ticks: Optional[int] = Field(None, alias="RunTimeTicks")


class Movie(MediaItem):
    pass


class Episode(MediaItem):
    series_name: Optional[str] = Field(None, alias="SeriesName")
    season_name: Optional[str] = Field(None, alias="SeasonName")
    premiere_date: Optional[str] = Field(None, alias="PremiereDate")


class Series(MediaItem):
    premiere_date: Optional[str] = Field(None, alias="PremiereDate")


class Audio(MediaItem):
    album: Optional[str] = Field(None, alias="Album")
    album_artist: Optional[str] = Field(None, alias="AlbumArtist")
    artists: list[str] = Field(default_factory=list, alias="Artists")


ITEM_VARIANTS: dict[str, type[MediaItem]] = {
    "Movie": Movie,
    "Episode": Episode,
    "Series": Series,
    "Audio": Audio,
}


def parse_item(raw: dict) -> MediaItem:
    """Validate a raw item into the variant named by its ``Type`` tag."""
    variant = ITEM_VARIANTS.get(raw.get("Type", ""), MediaItem)
    return variant.model_validate(raw)


def _coerce_item(value: Any) -> Any:
    if isinstance(value, dict):
        return parse_item(value)
    return value


AnyMediaItem = Annotated[MediaItem, BeforeValidator(_coerce_item)]


class PlayState(UpstreamModel):
    position_ticks: Optional[int] = Field(None, alias="PositionTicks")
    is_paused: bool = Field(False, alias="IsPaused")
    play_method: Optional[str] = Field(None, alias="PlayMethod")


class Session(UpstreamModel):
    id: str = Field(alias="Id")
    user_name: str = Field("", alias="UserName")
    user_id: str = Field("", alias="UserId")
    client: str = Field("", alias="Client")
    device_name: str = Field("", alias="DeviceName")
    last_activity_date: Optional[str] = Field(None, alias="LastActivityDate")
    now_playing_item: Optional[AnyMediaItem] = Field(None, alias="NowPlayingItem")
    play_state: Optional[PlayState] = Field(None, alias="PlayState")


class UserPolicy(UpstreamModel):
    is_administrator: bool = Field(False, alias="IsAdministrator")


class User(UpstreamModel):
    id: str = Field(alias="Id")
    name: str = Field("", alias="Name")
    last_activity_date: Optional[str] = Field(None, alias="LastActivityDate")
    policy: Optional[UserPolicy] = Field(None, alias="Policy")


class SystemInfo(UpstreamModel):
    server_name: Optional[str] = Field(None, alias="ServerName")
    version: Optional[str] = Field(None, alias="Version")
    operating_system: Optional[str] = Field(None, alias="OperatingSystem")


# Dashboard view model. Serialized with camelCase keys for the frontend.


class ViewModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SystemCard(ViewModel):
    server_name: Optional[str] = None
    version: Optional[str] = None
    os: Optional[str] = None


class MovieCard(ViewModel):
    id: str
    title: str
    year: Optional[int] = None
    image: str


class EpisodeCard(ViewModel):
    id: str
    title: str
    series: Optional[str] = None
    year: Optional[int] = None
    date: Optional[str] = None
    image: str
    type: str


class MusicCard(ViewModel):
    id: str
    title: str
    artist: str
    album: Optional[str] = None
    year: Optional[int] = None
    image: str


class StreamCard(ViewModel):
    id: str
    user: str
    user_image: str
    type: str
    title: str
    year: Optional[int] = None
    series_name: Optional[str] = None
    season_number: Optional[str] = None
    album_name: Optional[str] = None
    artist_name: Optional[str] = None
    image: str
    device: str
    status: str
    method: Optional[str] = None
    total_ticks: str
    current_ticks: str
    progress: int


class BrowserCard(ViewModel):
    user: str
    device: str
    client: str


class RosterEntry(ViewModel):
    id: str
    name: str
    last_active: Optional[str] = None
    is_admin: bool


class LatestItems(ViewModel):
    movies: list[MovieCard] = []
    episodes: list[EpisodeCard] = []
    music: list[MusicCard] = []


class Library(ViewModel):
    """Item counts are passed through as extra keys next to ``latest``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    latest: LatestItems


class Dashboard(ViewModel):
    system: SystemCard
    library: Library
    active_streams: list[StreamCard]
    recent_browsers: list[BrowserCard]
    total_sessions: int
    user_roster: list[RosterEntry]
