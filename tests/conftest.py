import copy
from datetime import datetime, timezone

import httpx
import pytest

from jnfo.config import Settings
from jnfo.jellyfin_client import JellyfinClient

BASE_URL = "http://jellyfin.test"
API_KEY = "secret-key"
ADMIN_ID = "u-2"
NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

SESSIONS = [
    {
        "Id": "s-1",
        "UserId": "u-2",
        "UserName": "bob",
        "Client": "Jellyfin Web",
        "DeviceName": "Firefox",
        "LastActivityDate": "2024-06-01T11:59:00.0000000Z",
        "NowPlayingItem": {
            "Id": "ep-1",
            "Name": "Pilot",
            "Type": "Episode",
            "SeriesName": "Show",
            "SeasonName": "Season 1",
            "ProductionYear": 2020,
            "RunTimeTicks": 36_610_000_000,
        },
        "PlayState": {
            "PositionTicks": 18_305_000_000,
            "IsPaused": False,
            "PlayMethod": "DirectPlay",
        },
    },
    {
        "Id": "s-2",
        "UserId": "u-1",
        "UserName": "Alice",
        "Client": "Infuse",
        "DeviceName": "Apple TV",
        "LastActivityDate": "2024-06-01T11:58:00.0000000Z",
        "NowPlayingItem": {
            "Id": "mv-9",
            "Name": "Zodiac",
            "Type": "Movie",
            "ProductionYear": 2007,
            "RunTimeTicks": 0,
        },
        "PlayState": {"PositionTicks": 100, "IsPaused": True, "PlayMethod": "Transcode"},
    },
    {
        "Id": "s-3",
        "UserId": "u-1",
        "UserName": "alice",
        "Client": "Finamp",
        "DeviceName": "Pixel",
        "LastActivityDate": "2024-06-01T11:57:00.0000000Z",
        "NowPlayingItem": {
            "Id": "au-1",
            "Name": "Anthem",
            "Type": "Audio",
            "Album": "Hits",
            "AlbumArtist": "Band",
            "Artists": ["Band", "Guest"],
            "RunTimeTicks": 2_000_000_000,
        },
        "PlayState": {"PositionTicks": 670_000_000, "IsPaused": False, "PlayMethod": "DirectPlay"},
    },
    {
        "Id": "s-4",
        "UserId": "u-3",
        "UserName": "carol",
        "Client": "Jellyfin Android",
        "DeviceName": "Phone",
        "LastActivityDate": "2024-06-01T11:50:00.1234567Z",
        "PlayState": {"IsPaused": False},
    },
    {
        "Id": "s-5",
        "UserId": "u-2",
        "UserName": "bob",
        "Client": "Jellyseerr",
        "DeviceName": "Server",
        "LastActivityDate": "2024-06-01T11:59:30.0000000Z",
    },
    {
        "Id": "s-6",
        "UserId": "u-4",
        "UserName": "dave",
        "Client": "Jellyfin Web",
        "DeviceName": "Chrome",
        "LastActivityDate": "2024-06-01T11:30:00.0000000Z",
    },
]

USERS = [
    {
        "Id": "u-1",
        "Name": "Alice",
        "LastActivityDate": "2024-06-01T11:00:00.0000000Z",
        "Policy": {"IsAdministrator": False},
    },
    {
        "Id": "u-2",
        "Name": "bob",
        "LastActivityDate": "2024-06-01T11:55:00.0000000Z",
        "Policy": {"IsAdministrator": True},
    },
    {
        "Id": "u-3",
        "Name": "carol",
        "LastActivityDate": "2024-05-20T08:00:00.0000000Z",
        "Policy": {"IsAdministrator": False},
    },
]

COUNTS = {"MovieCount": 120, "SeriesCount": 15, "EpisodeCount": 900, "SongCount": 3000}

SYSTEM_INFO = {
    "ServerName": "den",
    "Version": "10.9.6",
    "OperatingSystem": "Linux",
    "Id": "server-id",
}

LATEST = {
    "Movie": [
        {"Id": "m1", "Name": "Old", "Type": "Movie", "ProductionYear": 1999},
        {"Id": "m2", "Name": "New", "Type": "Movie", "ProductionYear": 2023},
        {"Id": "m3", "Name": "Undated", "Type": "Movie"},
    ],
    "Episode": [
        {
            "Id": "e1",
            "Name": "Ep A",
            "Type": "Episode",
            "SeriesName": "Show",
            "ProductionYear": 2024,
            "PremiereDate": "2024-01-01T00:00:00.0000000Z",
        },
        {
            "Id": "sr1",
            "Name": "Brand New",
            "Type": "Series",
            "PremiereDate": "2024-05-01T00:00:00.0000000Z",
        },
        {"Id": "e2", "Name": "Ep B", "Type": "Episode", "SeriesName": "Show"},
    ],
    "Audio": [
        {
            "Id": "a1",
            "Name": "Song1",
            "Type": "Audio",
            "Artists": ["X", "Y"],
            "Album": "Alb",
            "ProductionYear": 2010,
        },
        {"Id": "a2", "Name": "Song2", "Type": "Audio", "ProductionYear": 2021},
    ],
}


class FakeJellyfin:
    """Serves canned Jellyfin payloads and records what was requested."""

    def __init__(self):
        self.payloads = {
            "/Sessions": copy.deepcopy(SESSIONS),
            "/Items/Counts": copy.deepcopy(COUNTS),
            "/Users": copy.deepcopy(USERS),
            "/System/Info": copy.deepcopy(SYSTEM_INFO),
        }
        self.latest = copy.deepcopy(LATEST)
        self.failures: dict[str, httpx.Response | Exception] = {}
        self.requests: list[httpx.Request] = []

    def fail(self, path: str, outcome: httpx.Response | Exception) -> None:
        self.failures[path] = outcome

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.failures:
            outcome = self.failures[path]
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        if path in self.payloads:
            return httpx.Response(200, json=self.payloads[path])
        if path.startswith("/Users/") and path.endswith("/Items/Latest"):
            item_type = request.url.params.get("IncludeItemTypes", "")
            return httpx.Response(200, json=self.latest.get(item_type, []))
        return httpx.Response(404, json={"message": "not found"})

    def client_factory(self, settings: Settings):
        transport = httpx.MockTransport(self.handler)
        return lambda: JellyfinClient(settings, transport=transport)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jellyfin_url=f"{BASE_URL}/",
        jellyfin_api_key=API_KEY,
        static_dir=str(tmp_path / "dist"),
    )


@pytest.fixture
def fake_jellyfin():
    return FakeJellyfin()
