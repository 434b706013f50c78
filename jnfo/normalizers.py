"""Pure helpers that turn Jellyfin records into dashboard cards."""

import math
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from .models import (
    Audio,
    BrowserCard,
    Episode,
    EpisodeCard,
    MediaItem,
    MovieCard,
    MusicCard,
    PlayState,
    RosterEntry,
    Session,
    StreamCard,
    User,
)

# Jellyfin durations and positions are 100-nanosecond ticks
TICKS_PER_SECOND = 10_000_000

NEW_SERIES_LABEL = "New Series Premiere"
UNKNOWN_ARTIST = "Unknown"

CAROUSEL_IMAGE_PARAMS = {"fillWidth": 400, "quality": 90}
STREAM_IMAGE_PARAMS = {"maxWidth": 800}

_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def format_ticks(ticks: Optional[int]) -> str:
    """Format ticks as ``HH:MM:SS``, or ``MM:SS`` when under an hour."""
    total_seconds = (ticks or 0) // TICKS_PER_SECOND
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


def calculate_progress(current: Optional[int], total: Optional[int]) -> int:
    """Playback progress as a whole percentage, halves rounded up."""
    if not total:
        return 0
    percent = math.floor((current or 0) / total * 100 + 0.5)
    return max(0, min(100, percent))


def item_image_url(
    base_url: str,
    item_id: str,
    image_type: str = "Primary",
    index: Optional[int] = None,
    **params,
) -> str:
    url = f"{base_url}/Items/{item_id}/Images/{image_type}"
    if index is not None:
        url = f"{url}/{index}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def user_image_url(base_url: str, user_id: str, image_type: str = "Primary") -> str:
    return f"{base_url}/Users/{user_id}/Images/{image_type}"


def resolve_episode_titles(item: MediaItem) -> tuple[str, str]:
    """Return ``(title, subtitle)`` for an entry of the TV carousel.

    Episodes are subtitled with their series; anything else (a bare series
    reported as latest) gets the premiere label.
    """
    if isinstance(item, Episode):
        return item.name, item.series_name or ""
    return item.name, NEW_SERIES_LABEL


def resolve_artist(item: Audio) -> str:
    if item.album_artist:
        return item.album_artist
    if item.artists:
        return item.artists[0]
    return UNKNOWN_ARTIST


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Jellyfin ISO timestamp into an aware datetime.

    Jellyfin emits seven fractional digits and a ``Z`` suffix; both are
    accepted. Returns None for missing or malformed values.
    """
    if not value:
        return None
    cleaned = _FRACTION_RE.sub(r".\1", value.strip())
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def movie_card(item: MediaItem, base_url: str) -> MovieCard:
    return MovieCard(
        id=item.id,
        title=item.name,
        year=item.production_year,
        image=item_image_url(base_url, item.id, **CAROUSEL_IMAGE_PARAMS),
    )


def episode_card(item: MediaItem, base_url: str) -> EpisodeCard:
    title, series = resolve_episode_titles(item)
    return EpisodeCard(
        id=item.id,
        title=title,
        series=series,
        year=item.production_year,
        date=getattr(item, "premiere_date", None),
        image=item_image_url(base_url, item.id, **CAROUSEL_IMAGE_PARAMS),
        type=item.type,
    )


def music_card(item: MediaItem, base_url: str) -> MusicCard:
    if isinstance(item, Audio):
        artist = resolve_artist(item)
        album = item.album
    else:
        artist, album = UNKNOWN_ARTIST, None
    return MusicCard(
        id=item.id,
        title=item.name,
        artist=artist,
        album=album,
        year=item.production_year,
        image=item_image_url(base_url, item.id, **CAROUSEL_IMAGE_PARAMS),
    )


def stream_card(session: Session, base_url: str) -> StreamCard:
    """Card for a session that has a now-playing item."""
    item = session.now_playing_item
    state = session.play_state or PlayState()

    series_name = season_name = album_name = artist_name = None
    if isinstance(item, Episode):
        series_name = item.series_name or None
        season_name = item.season_name or None
    elif isinstance(item, Audio):
        album_name = item.album or None
        artist_name = item.album_artist or None

    return StreamCard(
        id=session.id,
        user=session.user_name,
        user_image=user_image_url(base_url, session.user_id),
        type=item.type,
        title=item.name,
        year=item.production_year,
        series_name=series_name,
        season_number=season_name,
        album_name=album_name,
        artist_name=artist_name,
        image=item_image_url(base_url, item.id, "Backdrop", 0, **STREAM_IMAGE_PARAMS),
        device=f"{session.client} ({session.device_name})",
        status="Paused" if state.is_paused else "Playing",
        method=state.play_method,
        total_ticks=format_ticks(item.run_time_ticks),
        current_ticks=format_ticks(state.position_ticks),
        progress=calculate_progress(state.position_ticks, item.run_time_ticks),
    )


def browser_card(session: Session) -> BrowserCard:
    return BrowserCard(user=session.user_name, device=session.device_name, client=session.client)


def roster_entry(user: User) -> RosterEntry:
    return RosterEntry(
        id=user.id,
        name=user.name,
        last_active=user.last_activity_date,
        is_admin=bool(user.policy and user.policy.is_administrator),
    )
