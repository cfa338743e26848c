"""Gameweek and season bucketing for activations."""

from datetime import UTC, datetime

SEASON_START_MONTH = 8
MAX_GAMEWEEK = 38


def gameweek_for(when: datetime) -> int:
    """
    Gameweek number of a date, counted in whole weeks from August 1st of
    the same calendar year and clamped to 1..38.
    """
    when = when.astimezone(UTC) if when.tzinfo else when.replace(tzinfo=UTC)
    season_start = datetime(when.year, SEASON_START_MONTH, 1, tzinfo=UTC)
    weeks = (when - season_start).days // 7
    return max(1, min(MAX_GAMEWEEK, weeks + 1))


def season_for(when: datetime) -> str:
    """Season label ("2024-2025"); a season starts in August."""
    year = when.year
    if when.month >= SEASON_START_MONTH:
        return f"{year}-{year + 1}"
    return f"{year - 1}-{year}"
