"""
OAuth2 client-credentials transport for the game-data API.

authenticate() performs the grant once up front, so building the transport
doubles as the credentials health check, and returns a requests.Session
whose auth hook renews the bearer token when it is about to expire.

TransportCache keeps one such session per process so warm Lambda
invocations can skip the token exchange.
"""

import threading
import time
from typing import Callable, Optional, Tuple

import requests
from requests.auth import AuthBase

from wow_ingestion.errors import AuthenticationError
from wow_ingestion.utils.logging_utils import log_progress

TOKEN_URL_FORMAT = "https://{region}.battle.net/oauth/token"

# Renew this many seconds before the upstream expiry
EXPIRY_MARGIN_SECONDS = 60


class ClientCredentialsAuth(AuthBase):
    """Attaches a bearer token to each request, renewing it when it expires."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        timeout: float = 10.0,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self.token_url = token_url
        self.timeout = timeout
        self._access_token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def fetch_token(self) -> None:
        """
        Run the client-credentials grant and store the new token.

        Client id and secret go in an HTTP Basic Authorization header.

        Raises:
            AuthenticationError: If the endpoint is unreachable or rejects the grant.
        """
        try:
            response = requests.post(
                self.token_url,
                auth=(self._client_id, self._client_secret),
                data={"grant_type": "client_credentials"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
            access_token = payload["access_token"]
        except requests.exceptions.RequestException as e:
            raise AuthenticationError(
                f"client-credentials grant against {self.token_url} failed: {e}"
            ) from e
        except (ValueError, KeyError, TypeError) as e:
            raise AuthenticationError(
                f"token endpoint {self.token_url} returned no access token"
            ) from e

        expires_in = payload.get("expires_in", 86399)
        self._access_token = access_token
        self._expires_at = time.monotonic() + float(expires_in) - EXPIRY_MARGIN_SECONDS

    @property
    def expired(self) -> bool:
        return self._access_token is None or time.monotonic() >= self._expires_at

    def current_token(self) -> str:
        """Return a valid token, renewing it first if it has expired."""
        with self._lock:
            if self.expired:
                self.fetch_token()
                log_progress("OAuth2", "Access token renewed")
            return self._access_token

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request.headers["Authorization"] = f"Bearer {self.current_token()}"
        return request


def authenticate(
    client_id: str, client_secret: str, region: str, timeout: float = 10.0
) -> requests.Session:
    """
    Build an authenticated transport for the given region.

    Args:
        client_id: OAuth2 client id
        client_secret: OAuth2 client secret
        region: API region, e.g. 'us'
        timeout: Deadline for each token request, in seconds

    Returns:
        requests.Session that authenticates every request it sends

    Raises:
        AuthenticationError: If the initial grant fails.
    """
    auth = ClientCredentialsAuth(
        client_id,
        client_secret,
        TOKEN_URL_FORMAT.format(region=region),
        timeout=timeout,
    )
    auth.fetch_token()
    log_progress("OAuth2", f"Obtained access token for region {region}")

    session = requests.Session()
    session.auth = auth
    return session


TransportFactory = Callable[[str, str, str], requests.Session]


class TransportCache:
    """
    Process-scoped holder for the authenticated transport.

    The first get() builds the session under a lock; later calls with the
    same credentials and region read it without locking. Different
    credentials replace the cached session. Reuse is an optimisation only:
    clearing the cache never changes results.
    """

    def __init__(self, factory: TransportFactory = authenticate) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._entry: Optional[Tuple[Tuple[str, str, str], requests.Session]] = None

    def get(self, client_id: str, client_secret: str, region: str) -> requests.Session:
        key = (client_id, client_secret, region)
        entry = self._entry
        if entry is not None and entry[0] == key:
            return entry[1]

        with self._lock:
            entry = self._entry
            if entry is None or entry[0] != key:
                entry = (key, self._factory(client_id, client_secret, region))
                self._entry = entry
            return entry[1]

    def clear(self) -> None:
        with self._lock:
            self._entry = None
