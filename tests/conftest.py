"""Shared pytest fixtures for the sfwsdl test suite."""

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from sfwsdl.client import SalesforceClient, build_http_client
from sfwsdl.models import Cookie, DownloadConfig, Environment, SessionKey
from sfwsdl.storage import CookieStorage
from sfwsdl.validity import add_years


class RecordingHandler:
    """MockTransport handler that records requests and answers from a route table."""

    def __init__(self, routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        route = self.routes.get((request.method, url))
        if route is None:
            return httpx.Response(404, text=f"no route for {request.method} {url}")
        return route(request)

    def calls(self, method: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if method is None or r.method == method]


@pytest.fixture
def make_handler() -> Callable[..., RecordingHandler]:
    """Returns a factory for RecordingHandler instances."""
    return RecordingHandler


@pytest.fixture
def make_client() -> Iterator[Callable[[RecordingHandler], SalesforceClient]]:
    """Returns a factory building a SalesforceClient over a mock transport."""
    clients: list[httpx.Client] = []

    def factory(handler: RecordingHandler) -> SalesforceClient:
        http_client = build_http_client(transport=httpx.MockTransport(handler))
        clients.append(http_client)
        return SalesforceClient(http_client)

    yield factory

    for http_client in clients:
        http_client.close()


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def session_key() -> SessionKey:
    return SessionKey(Environment.PRODUCTION, "dev@example.com")


@pytest.fixture
def cookie_storage(tmp_path) -> CookieStorage:
    """Returns a CookieStorage rooted in a temporary directory."""
    return CookieStorage(tmp_path / "cookies")


@pytest.fixture
def live_oid_cookie() -> Cookie:
    """Returns an 'oid' cookie issued moments ago, two years out."""
    issued = datetime.now(timezone.utc).replace(microsecond=0)
    return Cookie(
        name="oid",
        value="00D000000000001",
        domain="cached.example",
        path="/",
        expiry=add_years(issued, 2) + timedelta(days=1),
        secure=True,
    )


@pytest.fixture
def download_config(tmp_path) -> DownloadConfig:
    return DownloadConfig(
        username="dev@example.com",
        password="s3cret",
        environment=Environment.PRODUCTION,
        output_directory=tmp_path / "wsdl",
        cookies_directory=tmp_path / "cookies",
    )
