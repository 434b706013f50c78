import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .config import Settings
from .jellyfin_client import JellyfinClient, NoUsersError
from .models import (
    Dashboard,
    LatestItems,
    Library,
    Session,
    SystemCard,
    SystemInfo,
    User,
)
from .normalizers import (
    browser_card,
    episode_card,
    movie_card,
    music_card,
    parse_timestamp,
    roster_entry,
    stream_card,
)

logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)

ClientFactory = Callable[[], JellyfinClient]


def resolve_admin_id(users: list[User]) -> str:
    """Id of the first administrator, or of the first user if there is none."""
    if not users:
        raise NoUsersError("Jellyfin returned no users", "/Users")
    for user in users:
        if user.policy and user.policy.is_administrator:
            return user.id
    return users[0].id


def is_bot_client(client: str, bot_clients: list[str]) -> bool:
    name = client.lower()
    return any(marker.lower() in name for marker in bot_clients)


def is_recent(session: Session, now: datetime, window: timedelta) -> bool:
    last_active = parse_timestamp(session.last_activity_date)
    if last_active is None:
        return False
    return now - last_active < window


class DashboardAggregator:
    """Builds the dashboard document from a fresh set of Jellyfin calls."""

    def __init__(self, settings: Settings, client_factory: Optional[ClientFactory] = None):
        self.settings = settings
        self._client_factory = client_factory or (lambda: JellyfinClient(settings))

    async def build(self, now: Optional[datetime] = None) -> Dashboard:
        """Fetch everything and assemble the dashboard.

        Any upstream failure propagates; no partial document is produced.
        """
        now = now or datetime.now(timezone.utc)
        started = time.monotonic()

        async with self._client_factory() as client:
            sessions, counts, users, system_info = await asyncio.gather(
                client.get_sessions(),
                client.get_item_counts(),
                client.get_users(),
                client.get_system_info(),
            )
            logger.debug(f"First stage fetched in {time.monotonic() - started:.3f}s")

            admin_id = resolve_admin_id(users)
            limit = self.settings.latest_limit
            latest_movies, latest_episodes, latest_music = await asyncio.gather(
                client.get_latest_items(admin_id, "Movie", limit),
                client.get_latest_items(admin_id, "Episode", limit),
                client.get_latest_items(admin_id, "Audio", limit),
            )
            logger.debug(f"Latest items fetched in {time.monotonic() - started:.3f}s")

        base_url = self.settings.base_url

        movies = sorted(
            (movie_card(m, base_url) for m in latest_movies),
            key=lambda c: (c.year is not None, c.year or 0),
            reverse=True,
        )
        episodes = sorted(
            (episode_card(e, base_url) for e in latest_episodes),
            key=lambda c: parse_timestamp(c.date) or _EARLIEST,
            reverse=True,
        )
        music = sorted(
            (music_card(m, base_url) for m in latest_music),
            key=lambda c: (c.year is not None, c.year or 0),
            reverse=True,
        )

        playing = sorted(
            (s for s in sessions if s.now_playing_item is not None),
            key=lambda s: (s.user_name.lower(), s.now_playing_item.name.lower()),
        )
        active_streams = [stream_card(s, base_url) for s in playing]

        window = timedelta(minutes=self.settings.recent_window_minutes)
        recent_browsers = [
            browser_card(s)
            for s in sessions
            if s.now_playing_item is None
            and not is_bot_client(s.client, self.settings.bot_clients)
            and is_recent(s, now, window)
        ]

        roster = sorted(users, key=lambda u: u.last_activity_date or "", reverse=True)

        dashboard = Dashboard(
            system=_system_card(system_info),
            library=Library(
                latest=LatestItems(movies=movies, episodes=episodes, music=music),
                **counts,
            ),
            active_streams=active_streams,
            recent_browsers=recent_browsers,
            total_sessions=len(sessions),
            user_roster=[roster_entry(u) for u in roster],
        )
        logger.info(
            f"Dashboard built in {time.monotonic() - started:.2f}s: "
            f"{len(active_streams)} streaming, {len(recent_browsers)} browsing, "
            f"{len(sessions)} sessions"
        )
        return dashboard


def _system_card(info: SystemInfo) -> SystemCard:
    return SystemCard(
        server_name=info.server_name,
        version=info.version,
        os=info.operating_system,
    )
