"""Salesforce HTTP client for logging in and downloading WSDLs."""

import logging
from email.message import Message
from http.cookiejar import CookieJar
from pathlib import Path

import httpx

from sfwsdl.exceptions import (
    ActivationRequiredError,
    AuthenticationError,
    NetworkError,
    ResponseFormatError,
    ResponseStatusError,
    TransferError,
)
from sfwsdl.models import Environment


logger = logging.getLogger(__name__)

AUTHORIZATION_SERVERS = {
    Environment.PRODUCTION: "https://login.salesforce.com",
    Environment.SANDBOX: "https://test.salesforce.com",
}

ACTIVATION_PATH = "/_nc_external/identity/ic/ICRequired"

CONNECT_TIMEOUT_SECONDS = 30.0


def build_http_client(
    cookies: CookieJar | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create the blocking transport used for one session key."""
    return httpx.Client(
        cookies=cookies,
        transport=transport,
        timeout=httpx.Timeout(None, connect=CONNECT_TIMEOUT_SECONDS),
        follow_redirects=False,
    )


def resource_server_of(location: str) -> str:
    """Return the scheme and host part of an absolute URL."""
    # Skip past "https://" before looking for the start of the path.
    end = location.find("/", 8)
    return location if end == -1 else location[:end]


def parse_filename(content_disposition: str | None) -> str | None:
    """Extract the filename parameter of a Content-Disposition header."""
    if not content_disposition:
        return None

    message = Message()
    message["Content-Disposition"] = content_disposition
    return message.get_filename() or None


class SalesforceClient:
    """Runs the login, redirect and download requests over one httpx client."""

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def _consume(self, response: httpx.Response) -> None:
        # Unread bodies are dropped when the stream closes.
        if not logger.isEnabledFor(logging.DEBUG):
            return

        logger.debug("Displaying content:")
        try:
            for line in response.iter_lines():
                logger.debug(line)
        except httpx.HTTPError as e:
            logger.debug("Could not read body: %s", e)

    def login(self, environment: Environment, username: str, password: str) -> str:
        """Post credentials to the authorization server and return the redirect URL."""
        server = AUTHORIZATION_SERVERS[environment]
        logger.info("Logging in as %s at authorization server at %s...", username, server)

        try:
            with self._client.stream(
                "POST",
                server,
                data={"un": username, "pw": password},
                follow_redirects=False,
            ) as response:
                self._consume(response)
                status_code = response.status_code
                location = response.headers.get("Location")
        except httpx.RequestError as e:
            raise NetworkError(f"Cannot log in! {e}") from e

        # No redirection means we're not logged in.
        if status_code != httpx.codes.FOUND or not location:
            raise AuthenticationError(status_code)

        return location

    def resolve(self, redirect_location: str) -> str:
        """Follow the login redirect so the resource server sets its cookies.

        Returns the base URL of the resource server.
        """
        resource_server = resource_server_of(redirect_location)

        if redirect_location.startswith(resource_server + ACTIVATION_PATH):
            raise ActivationRequiredError(redirect_location)

        logger.info("Accessing resource server at %s", redirect_location)

        try:
            with self._client.stream("GET", redirect_location, follow_redirects=True) as response:
                self._consume(response)
        except httpx.RequestError as e:
            raise NetworkError(f"Cannot access resource server! {e}") from e

        return resource_server

    def fetch(
        self,
        resource_server: str,
        wsdl_uri: str,
        output_directory: Path,
        filename: str | None = None,
    ) -> Path:
        """Download the WSDL into output_directory and return the written path."""
        url = f"{resource_server}/{wsdl_uri.lstrip('/')}"
        logger.info("Getting WSDL from %s", url)

        try:
            with self._client.stream("GET", url) as response:
                if response.status_code != httpx.codes.OK:
                    self._consume(response)
                    raise ResponseStatusError(response.status_code)

                if filename is None:
                    logger.info("No filename defined. Using default one from server...")
                    filename = self._server_filename(response)

                path = Path(output_directory) / filename
                logger.info("Saving WSDL to '%s'...", path)
                self._write_body(response, path)
        except httpx.RequestError as e:
            raise NetworkError(f"Cannot get WSDL! {e}") from e

        return path

    def _server_filename(self, response: httpx.Response) -> str:
        filename = parse_filename(response.headers.get("Content-Disposition"))

        if filename is None:
            self._consume(response)
            raise ResponseFormatError("Couldn't get filename from server!")

        if filename in (".", "..") or Path(filename).name != filename or "\\" in filename:
            raise ResponseFormatError(f"Server sent an unusable filename: {filename!r}")

        return filename

    def _write_body(self, response: httpx.Response, path: Path) -> None:
        # path is only replaced once the whole body is on disk.
        partial = path.with_name(path.name + ".part")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(partial, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
            partial.replace(path)
        except (OSError, httpx.HTTPError) as e:
            partial.unlink(missing_ok=True)
            raise TransferError(f"Failed saving the WSDL! {e}") from e
