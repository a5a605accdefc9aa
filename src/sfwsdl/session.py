"""Session manager for coordinating Salesforce authentication and WSDL downloads."""

import logging
import threading
from collections.abc import Callable
from http.cookiejar import CookieJar
from pathlib import Path

import httpx

from sfwsdl.client import SalesforceClient, build_http_client
from sfwsdl.models import DownloadConfig, DownloadResult, SessionKey, SessionRecord
from sfwsdl.storage import CookieStorage
from sfwsdl.validity import check_session


logger = logging.getLogger(__name__)


class SessionRegistry:
    """Caches one httpx client per session key for the lifetime of the process."""

    def __init__(
        self,
        client_factory: Callable[[CookieJar], httpx.Client] = build_http_client,
    ) -> None:
        self._client_factory = client_factory
        self._records: dict[SessionKey, SessionRecord] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self, key: SessionKey, cookie_factory: Callable[[SessionKey], CookieJar]
    ) -> SessionRecord:
        """Return the record for key, creating it with persisted cookies on first use."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                client = self._client_factory(cookie_factory(key))
                record = SessionRecord(key=key, client=client)
                self._records[key] = record
            return record

    def close(self) -> None:
        with self._lock:
            records = list(self._records.values())
            self._records.clear()

        for record in records:
            record.client.close()


class SessionManager:
    """Reuses cached sessions, logs in when needed and downloads WSDLs."""

    def __init__(
        self,
        registry: SessionRegistry | None = None,
        storage_factory: Callable[[Path], CookieStorage] = CookieStorage,
    ) -> None:
        self._registry = registry or SessionRegistry()
        self._storage_factory = storage_factory

    def __enter__(self) -> "SessionManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._registry.close()

    def download(self, config: DownloadConfig) -> DownloadResult:
        """Download the configured WSDL, logging in only if no cached session is alive.

        Cookies are saved once before returning, whether or not the download
        succeeded, so a retry can skip the login.
        """
        key = config.key
        storage = self._storage_factory(config.cookies_directory)
        record = self._registry.get_or_create(key, storage.load_cookie_jar)
        client = SalesforceClient(record.client)

        endpoint = check_session(record.cookies())
        reused_session = endpoint is not None

        try:
            if endpoint is None:
                location = client.login(config.environment, config.username, config.password)
                endpoint = client.resolve(location)
            else:
                logger.info("Reusing session for %s at %s", config.username, endpoint)

            path = client.fetch(
                endpoint,
                config.wsdl_uri,
                config.output_directory,
                config.filename,
            )
        finally:
            storage.save(key, record.cookies())

        return DownloadResult(
            path=path,
            filename=path.name,
            endpoint=endpoint,
            reused_session=reused_session,
        )
