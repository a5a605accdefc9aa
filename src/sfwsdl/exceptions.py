"""Custom exceptions for the sfwsdl application."""


class WsdlDownloadError(Exception):
    """Base exception for all fatal sfwsdl errors."""

    def __init__(self, message: str = "An error occurred while downloading the WSDL") -> None:
        self.message = message
        super().__init__(self.message)


class AuthenticationError(WsdlDownloadError):
    """Raised when the login request does not answer with a redirect."""

    def __init__(self, status_code: int | None = None, message: str | None = None) -> None:
        if message is None:
            message = "Cannot log in! Wrong credentials or need for activation for the current IP."
            if status_code is not None:
                message = f"{message} (HTTP {status_code})"
        super().__init__(message)
        self.status_code = status_code


class ActivationRequiredError(WsdlDownloadError):
    """Raised when the service asks for identity confirmation of the current IP."""

    def __init__(self, url: str) -> None:
        super().__init__(
            "Need activation. Open the below URL with a browser from the same public IP:\n" + url
        )
        self.url = url


class NetworkError(WsdlDownloadError):
    """Raised on transport failures while talking to the service."""

    def __init__(self, message: str = "Network error while talking to Salesforce") -> None:
        super().__init__(message)


class ResponseStatusError(WsdlDownloadError):
    """Raised when the WSDL request answers with an unexpected HTTP status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Failed getting the WSDL! Got HTTP Code {status_code}")
        self.status_code = status_code


class ResponseFormatError(WsdlDownloadError):
    """Raised when the WSDL response lacks information needed to save it."""

    def __init__(self, message: str = "Could not determine filename from server!") -> None:
        super().__init__(message)


class TransferError(WsdlDownloadError):
    """Raised when streaming the WSDL to disk fails."""

    def __init__(self, message: str = "Failed saving the WSDL!") -> None:
        super().__init__(message)
