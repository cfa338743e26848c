"""
API-Football client (via RapidAPI).

Pulls fixtures and per-player match statistics. Provider payloads are
loosely typed: numbers arrive as null or strings, so every statline is
normalized through `parse_player_statline`.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from types import TracebackType
from typing import Any

import httpx

from jogata.config import settings
from jogata.models.db import ensure_utc
from jogata.models.performance import PlayerStatLine

logger = logging.getLogger(__name__)

FINISHED_STATUSES = frozenset({"FT", "AET", "PEN"})


class FootballApiError(Exception):
    """Raised when the provider cannot be reached or answers with an error."""

    pass


@dataclass
class Fixture:
    """A fixture as reported by the provider."""

    fixture_id: str
    date: datetime
    status: str
    league: str
    home_team: str
    away_team: str

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def opponent_of(self, team: str) -> str:
        return self.away_team if team == self.home_team else self.home_team


@dataclass
class PlayerMatchStats:
    """One player's line in one fixture."""

    external_id: str
    name: str
    team: str
    position: str | None
    stats: PlayerStatLine = field(default_factory=PlayerStatLine)


def _int(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, str):
        value = value.rstrip("%")
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_player_statline(statistics: dict[str, Any]) -> PlayerStatLine:
    """
    Normalize one provider statistics block.

    Missing sections and null values count as zero; pass accuracy may be a
    number or a string such as "87" or "87%".
    """
    goals = statistics.get("goals") or {}
    passes = statistics.get("passes") or {}
    tackles = statistics.get("tackles") or {}
    dribbles = statistics.get("dribbles") or {}

    return PlayerStatLine(
        goals=_int(goals.get("total")),
        assists=_int(goals.get("assists")),
        pass_accuracy=_float(passes.get("accuracy")),
        dribbles_success=_int(dribbles.get("success")),
        tackles=_int(tackles.get("total")),
        interceptions=_int(tackles.get("interceptions")),
        key_passes=_int(passes.get("key")),
    )


def parse_fixture(data: dict[str, Any]) -> Fixture:
    fixture = data["fixture"]
    teams = data.get("teams") or {}
    return Fixture(
        fixture_id=str(fixture["id"]),
        date=ensure_utc(datetime.fromisoformat(fixture["date"])),
        status=(fixture.get("status") or {}).get("short", ""),
        league=(data.get("league") or {}).get("name", ""),
        home_team=(teams.get("home") or {}).get("name", ""),
        away_team=(teams.get("away") or {}).get("name", ""),
    )


def parse_fixture_players(data: list[dict[str, Any]]) -> list[PlayerMatchStats]:
    """Flatten the per-team player blocks of a fixture."""
    players: list[PlayerMatchStats] = []
    for team_block in data:
        team = (team_block.get("team") or {}).get("name", "")
        for entry in team_block.get("players") or []:
            player = entry.get("player") or {}
            statistics = entry.get("statistics") or []
            if not statistics or player.get("id") is None:
                continue
            first = statistics[0]
            players.append(
                PlayerMatchStats(
                    external_id=str(player["id"]),
                    name=player.get("name") or "Unknown",
                    team=team,
                    position=(first.get("games") or {}).get("position"),
                    stats=parse_player_statline(first),
                )
            )
    return players


class FootballApiClient:
    """
    Async client for the provider's fixtures endpoints.

    Use as an async context manager, or pass an existing httpx client.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or settings.football_api_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={
                "X-RapidAPI-Key": api_key if api_key is not None else settings.football_api_key,
                "X-RapidAPI-Host": settings.football_api_host,
            },
            timeout=timeout,
        )

    async def __aenter__(self) -> "FootballApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, path: str, params: dict[str, str]) -> list[dict[str, Any]]:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise FootballApiError(f"Request to {path} failed: {e}") from e
        except ValueError as e:
            raise FootballApiError(f"Invalid JSON from {path}") from e

        errors = payload.get("errors")
        if errors:
            raise FootballApiError(f"Provider returned errors for {path}: {errors}")
        return payload.get("response") or []

    async def fetch_live_fixtures(self) -> list[Fixture]:
        """GET /fixtures?live=all"""
        data = await self._get("/fixtures", {"live": "all"})
        return [parse_fixture(item) for item in data]

    async def fetch_fixtures_by_date(self, day: str) -> list[Fixture]:
        """GET /fixtures?date=YYYY-MM-DD"""
        data = await self._get("/fixtures", {"date": day})
        return [parse_fixture(item) for item in data]

    async def fetch_fixture_players(self, fixture_id: str) -> list[PlayerMatchStats]:
        """GET /fixtures/players?fixture=<id>"""
        data = await self._get("/fixtures/players", {"fixture": fixture_id})
        players = parse_fixture_players(data)
        logger.debug("Fetched %d player lines for fixture %s", len(players), fixture_id)
        return players
