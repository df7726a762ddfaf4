"""Date utility functions for nhlscore."""

from datetime import date, datetime


def parse_game_date(value: date | datetime | str) -> date:
    """
    Normalise a game date to a calendar date.

    Args:
        value: A `date`, a `datetime` (the time part is dropped) or an ISO-8601
            string such as `"2024-10-08"` or `"2024-10-08T23:00:00Z"`.

    Returns:
        The calendar date of the game.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise TypeError("argument `value` must be a date, datetime or ISO string")

    text = value.strip()
    if not text:
        raise ValueError("empty game date")
    # NHL feeds use a trailing Z for UTC, which fromisoformat rejects before 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if "T" in text or " " in text:
        return datetime.fromisoformat(text).date()
    return date.fromisoformat(text)


def get_current_season(today: date | None = None) -> str:
    """
    Get the current NHL season identifier.

    Args:
        today: Date to evaluate; defaults to today. Seasons roll over on
            September 1st, so August still belongs to the previous season.

    Returns:
        The season as the eight-character string used by the league feeds,
        e.g. `"20242025"`.
    """
    today = today or date.today()
    start_year = today.year if today.month >= 9 else today.year - 1
    return f"{start_year}{start_year + 1}"


def recent_seasons(count: int = 3, today: date | None = None) -> list[str]:
    """
    List the current season and the ones before it, oldest first.

    Args:
        count: Number of seasons to return.
        today: Date used to resolve the current season.

    Returns:
        Season identifiers in chronological order.
    """
    if count <= 0:
        raise ValueError("argument `count` must be positive")

    current = int(get_current_season(today)[:4])
    return [f"{year}{year + 1}" for year in range(current - count + 1, current + 1)]


def days_between(earlier: date, later: date) -> float:
    """Whole days from `earlier` to `later` (negative when reversed)."""
    return float((later - earlier).days)
