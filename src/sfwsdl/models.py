"""Data models for the sfwsdl downloader."""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http.cookiejar import Cookie as JarCookie
from pathlib import Path
from typing import Optional

import httpx


DEFAULT_WSDL_URI = "soap/wsdl.jsp"
DEFAULT_OUTPUT_DIRECTORY = Path("src/main/wsdl")
DEFAULT_COOKIES_DIRECTORY = Path("cookies")


class Environment(str, enum.Enum):
    """Salesforce deployment target, each with its own authorization server."""

    PRODUCTION = "production"
    SANDBOX = "sandbox"


@dataclass(frozen=True)
class SessionKey:
    """Identifies one cached session."""

    environment: Environment
    username: str


@dataclass(frozen=True)
class Cookie:
    """A transport-independent cookie record."""

    name: str
    value: str
    domain: str
    path: str = "/"
    expiry: Optional[datetime] = None
    secure: bool = False

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.name, self.domain, self.path)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expiry is None:
            return False
        return self.expiry <= (now or datetime.now(timezone.utc))

    @classmethod
    def from_jar_cookie(cls, cookie: JarCookie) -> "Cookie":
        expiry = None
        if cookie.expires is not None:
            expiry = datetime.fromtimestamp(cookie.expires, tz=timezone.utc)
        return cls(
            name=cookie.name,
            value=cookie.value or "",
            domain=cookie.domain,
            path=cookie.path,
            expiry=expiry,
            secure=bool(cookie.secure),
        )

    def to_jar_cookie(self) -> JarCookie:
        expires = int(self.expiry.timestamp()) if self.expiry is not None else None
        return JarCookie(
            version=0,
            name=self.name,
            value=self.value,
            port=None,
            port_specified=False,
            domain=self.domain,
            domain_specified=self.domain.startswith("."),
            domain_initial_dot=self.domain.startswith("."),
            path=self.path,
            path_specified=True,
            secure=self.secure,
            expires=expires,
            discard=expires is None,
            comment=None,
            comment_url=None,
            rest={},
        )


CookieSet = list[Cookie]


def dedupe_cookies(cookies: CookieSet) -> CookieSet:
    """Keep only the last cookie for each (name, domain, path)."""
    unique: dict[tuple[str, str, str], Cookie] = {}
    for cookie in cookies:
        unique.pop(cookie.identity, None)
        unique[cookie.identity] = cookie
    return list(unique.values())


@dataclass
class SessionRecord:
    """A cached transport and its cookie jar for one session key."""

    key: SessionKey
    client: httpx.Client

    def cookies(self) -> CookieSet:
        return [Cookie.from_jar_cookie(c) for c in self.client.cookies.jar]


@dataclass(frozen=True)
class DownloadConfig:
    """Settings for a single download run."""

    username: str
    password: str = field(repr=False)
    environment: Environment = Environment.PRODUCTION
    wsdl_uri: str = DEFAULT_WSDL_URI
    filename: Optional[str] = None
    output_directory: Path = DEFAULT_OUTPUT_DIRECTORY
    cookies_directory: Path = DEFAULT_COOKIES_DIRECTORY

    @property
    def key(self) -> SessionKey:
        return SessionKey(self.environment, self.username)


@dataclass
class DownloadResult:
    """Represents the outcome of a successful download."""

    path: Path
    filename: str
    endpoint: str
    reused_session: bool
