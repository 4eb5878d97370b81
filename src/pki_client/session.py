"""Authenticated sessions against a Horizon PKI instance."""

import logging
from typing import List, Optional, Protocol

import httpx

from .models import ExternalRequest, LabelElement, enrollment_payload

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/api/v1/requests/submit"
REQUEST_PATH = "/api/v1/requests/{request_id}"


class InvalidEndpointError(Exception):
    """Exception raised when a Horizon base URL cannot be used."""
    pass


class HorizonError(Exception):
    """Exception raised when Horizon rejects a call or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PKISession(Protocol):
    """Operations the controllers need from the external PKI service."""

    def submit_enrollment(self, profile: str, csr: bytes, labels: List[LabelElement]) -> ExternalRequest:
        ...

    def get_by_id(self, request_id: str) -> ExternalRequest:
        ...

    def close(self) -> None:
        ...

    def __enter__(self) -> "PKISession":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...


def parse_endpoint(url: str) -> httpx.URL:
    """
    Parse a Horizon base URL.

    Args:
        url: Base URL from the issuer spec

    Returns:
        Parsed URL

    Raises:
        InvalidEndpointError: If the URL is malformed or not http(s)
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise InvalidEndpointError(f"parse {url!r}: {e}") from e

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidEndpointError(f"parse {url!r}: expected an http(s) URL with a host")
    return parsed


class HorizonSession:
    """Horizon API session bound to one base URL and credential pair."""

    def __init__(self, base_url: httpx.URL, username: str, password: str, timeout: float = 30.0,
                 transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize a Horizon session.

        Args:
            base_url: Parsed Horizon base URL
            username: API identifier
            password: API key
            timeout: Per-call timeout in seconds
            transport: Optional httpx transport (used for testing)
        """
        self.base_url = base_url
        self._client = httpx.Client(
            base_url=base_url,
            headers={
                "X-API-ID": username,
                "X-API-KEY": password,
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "HorizonSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _call(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise HorizonError(f"{method} {path}: {e}") from e

        if response.is_error:
            detail = response.text
            try:
                body = response.json()
                detail = body.get("message") or body.get("error") or detail
            except ValueError:
                pass
            raise HorizonError(
                f"{method} {path} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise HorizonError(f"{method} {path}: invalid JSON response") from e

    def submit_enrollment(self, profile: str, csr: bytes, labels: List[LabelElement]) -> ExternalRequest:
        """
        Submit a decentralized enrollment request.

        Args:
            profile: Horizon enrollment profile
            csr: PEM-encoded certificate signing request
            labels: Labels to attach to the request

        Returns:
            The created Horizon request
        """
        logger.info(f"Submitting enrollment on profile {profile} to {self.base_url}")
        body = self._call("POST", SUBMIT_PATH, json=enrollment_payload(profile, csr, labels))
        request = ExternalRequest.from_response(body)
        if not request.id:
            raise HorizonError("submission response carried no request id")
        return request

    def get_by_id(self, request_id: str) -> ExternalRequest:
        """Fetch a Horizon request by its identifier."""
        logger.debug(f"Fetching Horizon request {request_id}")
        body = self._call("GET", REQUEST_PATH.format(request_id=request_id))
        return ExternalRequest.from_response(body)


class HorizonSessionFactory:
    """Builds Horizon sessions from issuer endpoint and credentials."""

    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def __call__(self, url: str, username: str, password: str) -> HorizonSession:
        """
        Create a session for one reconcile.

        Raises:
            InvalidEndpointError: If the URL cannot be parsed
        """
        base_url = parse_endpoint(url)
        return HorizonSession(base_url, username, password, timeout=self.timeout, transport=self.transport)
