"""Local file storage for session cookies."""

import json
import logging
from datetime import datetime, timezone
from http.cookiejar import CookieJar
from pathlib import Path
from typing import Any

from sfwsdl.models import Cookie, CookieSet, SessionKey, dedupe_cookies


logger = logging.getLogger(__name__)

COOKIES_SUFFIX = "-cookies.json"
SCHEMA_VERSION = 1


class CookieFormatError(ValueError):
    """Raised internally when a cookie file does not match the schema."""


def _cookie_to_dict(cookie: Cookie) -> dict[str, Any]:
    return {
        "name": cookie.name,
        "value": cookie.value,
        "domain": cookie.domain,
        "path": cookie.path,
        "expiry": cookie.expiry.astimezone(timezone.utc).isoformat() if cookie.expiry else None,
        "secure": cookie.secure,
    }


def _cookie_from_dict(data: dict[str, Any]) -> Cookie:
    if not isinstance(data, dict):
        raise CookieFormatError(f"Expected a cookie record, got {type(data).__name__}")

    expiry = data.get("expiry")
    if expiry is not None:
        expiry = datetime.fromisoformat(expiry)
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)

    secure = data.get("secure", False)
    if not isinstance(secure, bool):
        raise CookieFormatError("Cookie 'secure' flag must be a boolean")

    return Cookie(
        name=str(data["name"]),
        value=str(data["value"]),
        domain=str(data["domain"]),
        path=str(data.get("path", "/")),
        expiry=expiry,
        secure=secure,
    )


def dump_cookies(cookies: CookieSet) -> str:
    """Serialize cookies to the versioned JSON document."""
    document = {
        "version": SCHEMA_VERSION,
        "cookies": [_cookie_to_dict(c) for c in dedupe_cookies(cookies)],
    }
    return json.dumps(document, indent=2)


def parse_cookies(text: str) -> CookieSet:
    """Parse a versioned JSON document into cookies."""
    document = json.loads(text)
    if not isinstance(document, dict):
        raise CookieFormatError("Cookie file must contain a JSON object")

    version = document.get("version")
    if version != SCHEMA_VERSION:
        raise CookieFormatError(f"Unsupported cookie file version: {version!r}")

    records = document.get("cookies")
    if not isinstance(records, list):
        raise CookieFormatError("Cookie file has no 'cookies' list")

    return dedupe_cookies([_cookie_from_dict(r) for r in records])


class CookieStorage:
    """Persists cookie sets per (environment, username) under a cookies directory."""

    def __init__(self, cookies_directory: Path) -> None:
        self.cookies_directory = Path(cookies_directory)

    def _environment_dir(self, key: SessionKey) -> Path:
        return self.cookies_directory / key.environment.value

    def cookie_path(self, key: SessionKey) -> Path:
        return self._environment_dir(key) / f"{key.username}{COOKIES_SUFFIX}"

    def load(self, key: SessionKey) -> CookieSet:
        """Load cookies saved by a previous run.

        A missing file yields an empty set. A file that can't be read or
        parsed is reported as a warning and also yields an empty set, since
        logging in again always recovers a session.
        """
        path = self.cookie_path(key)

        try:
            if not path.exists():
                return []

            logger.info("Found cookies from previous execution. Loading from '%s'...", path)
            data = path.read_bytes()
        except OSError as e:
            logger.warning("Failed reading cookies from previous run! %s", e)
            return []

        try:
            cookies = parse_cookies(data.decode("utf-8"))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Failed loading cookies from previous run! %s", e)
            return []

        now = datetime.now(timezone.utc)
        return [c for c in cookies if not c.is_expired(now)]

    def load_cookie_jar(self, key: SessionKey) -> CookieJar:
        """Return a cookie jar populated with the cookies saved for key."""
        jar = CookieJar()
        for cookie in self.load(key):
            jar.set_cookie(cookie.to_jar_cookie())
        return jar

    def save(self, key: SessionKey, cookies: CookieSet) -> None:
        """Save cookies for key. Failures are logged and swallowed."""
        path = self.cookie_path(key)
        logger.info("Saving cookies to '%s'...", path)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(dump_cookies(cookies), encoding="utf-8")
        except OSError as e:
            logger.warning("Failed saving cookies from current run! %s", e)

    def delete(self, key: SessionKey) -> bool:
        """Delete the cookie file for key. Returns True if a file was removed."""
        path = self.cookie_path(key)
        if not path.exists():
            return False

        path.unlink()
        return True
