"""Time-to-expiry conversion (ACT/365).

Converts a contract expiration and an evaluation time into the year
fraction T used by the pricing formulas.
"""

from datetime import datetime, timezone

from bs_analytics.exceptions import InvalidInputError, TimeOrderingError

SECONDS_PER_DAY = 86400.0
DAYS_PER_YEAR = 365.0


def time_to_expiry(expiration: datetime, now: datetime | None = None) -> float:
    """Year fraction between an evaluation time and a contract expiration.

    Parameters
    ----------
    expiration : datetime
        Contract expiration timestamp.
    now : datetime | None, optional
        Evaluation timestamp. If None, uses the current time (UTC when
        ``expiration`` is timezone-aware, local naive time otherwise).

    Returns
    -------
    float
        Elapsed calendar days (fractional) divided by 365.

    Raises
    ------
    TimeOrderingError
        If ``now`` is after ``expiration``.
    InvalidInputError
        If one timestamp is timezone-aware and the other is naive.

    Examples
    --------
    >>> from datetime import datetime
    >>> time_to_expiry(datetime(2025, 1, 1), datetime(2024, 1, 2))
    1.0
    """
    if now is None:
        now = datetime.now(timezone.utc) if expiration.tzinfo is not None else datetime.now()

    if (expiration.tzinfo is None) != (now.tzinfo is None):
        raise InvalidInputError("expiration and now must both be naive or both be timezone-aware")

    if now > expiration:
        raise TimeOrderingError(
            f"Evaluation time {now.isoformat()} is after expiration {expiration.isoformat()}"
        )

    days = (expiration - now).total_seconds() / SECONDS_PER_DAY
    return days / DAYS_PER_YEAR


def expiry_to_years(expiry_str: str, reference_date: datetime | None = None) -> float:
    """Convert an expiry date string to time in years using ACT/365.

    Parameters
    ----------
    expiry_str : str
        Expiry date in YYYY-MM-DD format (midnight of that date).
    reference_date : datetime | None, optional
        Naive evaluation time. If None, uses the current local time.

    Returns
    -------
    float
        Time to expiry in years.

    Raises
    ------
    InvalidInputError
        If expiry_str cannot be parsed.
    TimeOrderingError
        If the expiry is before the reference date.

    Examples
    --------
    >>> from datetime import datetime
    >>> ref = datetime(2025, 12, 31)
    >>> expiry_to_years('2026-12-31', ref)
    1.0
    """
    try:
        expiry_date = datetime.strptime(expiry_str, "%Y-%m-%d")
    except (TypeError, ValueError) as e:
        raise InvalidInputError(
            f"Invalid expiry format {expiry_str!r}. Expected YYYY-MM-DD."
        ) from e

    return time_to_expiry(expiry_date, reference_date)
