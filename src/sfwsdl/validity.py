"""Decide whether cached cookies still hold a usable session."""

import logging
from datetime import datetime, timedelta, timezone

from sfwsdl.models import CookieSet


logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "oid"
SESSION_LIFETIME_YEARS = 2
CLOCK_SLACK = timedelta(hours=1)


def add_years(moment: datetime, years: int) -> datetime:
    """Shift moment by whole calendar years, mapping Feb 29 to Feb 28."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def check_session(cookies: CookieSet, now: datetime | None = None) -> str | None:
    """Return the resource server of a live session, or None.

    The 'oid' cookie is issued with an expiry about two years after login, so
    a session is considered alive while that expiry is later than
    now + 2 years - 1 hour.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    threshold = add_years(now, SESSION_LIFETIME_YEARS) - CLOCK_SLACK
    logger.debug("Future date: %s", threshold)

    for cookie in cookies:
        if cookie.name != SESSION_COOKIE_NAME:
            continue

        logger.debug("Expiry date: %s", cookie.expiry)
        if cookie.expiry is not None and threshold < cookie.expiry:
            return "https://" + cookie.domain.lstrip(".")
        return None

    return None
