"""HTTP client for the ShareFile v3 OData API.

Implements the ``DirectoryClient`` capability the sweep pipeline consumes:
listing users by partition, fetching user detail with security attributes,
and deleting a user with items/groups reassignment.  Anything that talks to
the directory in tests can be swapped for an in-memory double that provides
the same three methods.

Key behaviors:
- Automatic 429 Too Many Requests retry with Retry-After header support
- Bearer token authentication, with an OAuth2 password-grant bootstrap
- ``odata.nextLink`` pagination on listings
- TLS options: skip verification, custom CA bundle
- Proxy support
- ``redact_auth()`` helper for safe logging of headers
"""

import json
import time
from typing import Any, Dict, List, Optional, Protocol

import requests
import structlog

from .errors import ClientInitError, DirectoryError
from .models import Partition

logger = structlog.get_logger(__name__)


# Retry policy for 429 Too Many Requests (RFC 6585)
_MAX_RETRIES = 3
_DEFAULT_RETRY_AFTER = 2  # seconds, used when Retry-After header is missing

# Hard cap on followed nextLinks so a misbehaving server cannot loop forever
_MAX_PAGES = 1000


class DirectoryClient(Protocol):
    """The three directory calls the sweep pipeline depends on."""

    def list_accounts(self, partition: Partition) -> List[Dict[str, Any]]:
        ...

    def get_user(self, user_id: str) -> Dict[str, Any]:
        ...

    def delete_user(self, user_id: str, items_reassign_to: str,
                    groups_reassign_to: str, completely: bool = True) -> None:
        ...


class ShareFileResponse:
    """Normalized HTTP response wrapper."""

    def __init__(self, status_code: int, headers: Dict[str, str], body: str):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        self._json = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Parse and cache the response body as JSON."""
        if self._json is None:
            self._json = json.loads(self.body) if self.body else None
        return self._json

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lower = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lower:
                return v
        return None

    def error_message(self) -> str:
        """Extract the OData error message, falling back to the raw body."""
        try:
            data = self.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            err = data.get("message") or data.get("error") or {}
            if isinstance(err, dict):
                return str(err.get("value") or err.get("message") or self.body)
            return str(err)
        return self.body or f"HTTP {self.status_code}"


class ShareFileClient:
    """HTTP client for a ShareFile account's v3 API.

    Args:
        base_url:       API root (e.g. ``https://acme.sf-api.com/sf/v3``)
        token:          OAuth bearer token
        tls_no_verify:  Skip TLS certificate verification
        timeout:        Per-request timeout in seconds
        proxy:          HTTP/HTTPS proxy URL
        ca_bundle:      Path to custom CA certificate bundle file
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        tls_no_verify: bool = False,
        timeout: int = 30,
        proxy: Optional[str] = None,
        ca_bundle: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.tls_no_verify = tls_no_verify
        self.timeout = timeout
        self.proxy = proxy
        self.ca_bundle = ca_bundle

    @classmethod
    def authenticate(
        cls,
        auth_url: str,
        client_id: str,
        client_secret: str,
        username: str,
        password: str,
        base_url: Optional[str] = None,
        **kwargs: Any,
    ) -> "ShareFileClient":
        """Obtain a bearer token with the OAuth2 password grant.

        The token endpoint answers with ``subdomain`` and ``apicp``, from
        which the API root is derived unless ``base_url`` is given.

        Raises:
            ClientInitError: the token request failed or was refused.
        """
        client = cls(base_url or auth_url, **kwargs)
        form = {
            "grant_type": "password",
            "client_id": client_id,
            "client_secret": client_secret,
            "username": username,
            "password": password,
        }
        try:
            resp = client._request("POST", auth_url, data=form)
        except DirectoryError as exc:
            raise ClientInitError(f"Token request to {auth_url} failed: {exc}") from exc
        if not resp.ok:
            raise ClientInitError(
                f"Authentication refused (HTTP {resp.status_code}): {resp.error_message()}"
            )
        try:
            grant = resp.json() or {}
        except ValueError as exc:
            raise ClientInitError(f"Token endpoint returned invalid JSON: {exc}") from exc
        token = grant.get("access_token")
        if not token:
            raise ClientInitError("Token endpoint response has no access_token")

        client.token = token
        if base_url is None:
            subdomain = grant.get("subdomain")
            apicp = grant.get("apicp")
            if not subdomain or not apicp:
                raise ClientInitError("Token response lacks subdomain/apicp; set base_url")
            client.base_url = f"https://{subdomain}.{apicp}/sf/v3"
        logger.debug("client_authenticated", base_url=client.base_url, username=username)
        return client

    # -- Directory capability ------------------------------------------------

    def list_accounts(self, partition: Partition) -> List[Dict[str, Any]]:
        """List lightweight user references for a partition, following nextLink."""
        refs: List[Dict[str, Any]] = []
        target = partition.endpoint
        for _ in range(_MAX_PAGES):
            data = self._get_json(target)
            refs.extend(data.get("value", []))
            target = data.get("odata.nextLink") or data.get("@odata.nextLink")
            if not target:
                break
        else:
            raise DirectoryError(f"{partition.endpoint}: more than {_MAX_PAGES} pages")
        return refs

    def get_user(self, user_id: str) -> Dict[str, Any]:
        """Fetch a user with its ``Security`` attributes expanded."""
        return self._get_json(f"/Users({user_id})", params={"$expand": "Security"})

    def delete_user(self, user_id: str, items_reassign_to: str,
                    groups_reassign_to: str, completely: bool = True) -> None:
        """Delete a user, reassigning its items and group memberships."""
        params = {
            "completely": "true" if completely else "false",
            "itemsReassignTo": items_reassign_to,
            "groupsReassignTo": groups_reassign_to,
        }
        resp = self._request("DELETE", f"/Users({user_id})", params=params)
        if not resp.ok:
            raise DirectoryError(
                f"DELETE Users({user_id}): {resp.error_message()}", resp.status_code,
            )

    # -- Internals -----------------------------------------------------------

    def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        resp = self._request("GET", path, params=params)
        if not resp.ok:
            raise DirectoryError(f"GET {path}: {resp.error_message()}", resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            raise DirectoryError(f"GET {path}: invalid JSON ({exc})", resp.status_code) from exc
        if not isinstance(data, dict):
            raise DirectoryError(f"GET {path}: expected a JSON object", resp.status_code)
        return data

    def _build_headers(self) -> Dict[str, str]:
        """Build the default request headers with auth credentials."""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> ShareFileResponse:
        """Execute an HTTP request with automatic 429 retry.

        ``path`` may be relative to ``base_url`` or an absolute URL (as
        returned in ``odata.nextLink``).  Transport failures are raised as
        ``DirectoryError`` with no status code.
        """
        url = path if path.startswith(("http://", "https://")) else f"{self.base_url}{path}"
        headers = self._build_headers()

        for attempt in range(_MAX_RETRIES + 1):
            resp = self._send(method, url, headers, params, data)

            if resp.status_code == 429 and attempt < _MAX_RETRIES:
                retry_after = _parse_retry_after(resp.header("Retry-After"))
                logger.warning("rate_limited", method=method, url=url,
                               retry_after=retry_after, attempt=attempt + 1)
                time.sleep(retry_after)
                continue

            return resp

        return resp  # Return last response if all retries exhausted

    def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, str]],
        data: Optional[Dict[str, str]],
    ) -> ShareFileResponse:
        kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": self.timeout,
        }
        if self.ca_bundle:
            kwargs["verify"] = self.ca_bundle
        elif self.tls_no_verify:
            kwargs["verify"] = False
        else:
            kwargs["verify"] = True

        if self.proxy:
            kwargs["proxies"] = {"http": self.proxy, "https": self.proxy}
        if params:
            kwargs["params"] = params
        if data is not None:
            kwargs["data"] = data

        logger.debug("http_request", method=method, url=url,
                     headers=redact_auth(headers))
        try:
            resp = requests.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise DirectoryError(f"{method} {url}: {exc}") from exc
        return ShareFileResponse(resp.status_code, dict(resp.headers), resp.text)


def _parse_retry_after(value: Optional[str]) -> float:
    """Parse a Retry-After header value into seconds to wait.

    Handles integer-second values per RFC 7231 Section 7.1.3.
    Returns ``_DEFAULT_RETRY_AFTER`` if the header is missing or unparseable.
    Never negative; ``0`` means retry immediately.
    """
    if not value:
        return _DEFAULT_RETRY_AFTER
    try:
        return max(0.0, float(value))
    except ValueError:
        return _DEFAULT_RETRY_AFTER


def redact_auth(headers: Dict[str, str]) -> Dict[str, str]:
    """Return a copy of headers with Authorization values replaced by ``***REDACTED***``."""
    redacted = dict(headers)
    for key in list(redacted.keys()):
        if key.lower() == "authorization":
            redacted[key] = "***REDACTED***"
    return redacted
