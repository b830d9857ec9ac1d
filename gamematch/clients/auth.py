"""Twitch client-credential exchange for IGDB access."""

from dataclasses import dataclass
from typing import Optional

import requests

from ..env import twitch_credentials
from ..errors import ConfigurationError
from ..logger import get_logger
from ..retry import RetryError, exponential_backoff, should_retry_http_status

logger = get_logger()

TOKEN_URL = "https://id.twitch.tv/oauth2/token"


@dataclass(frozen=True)
class Token:
    access_token: str
    client_id: str
    expires_in: Optional[int] = None


def _is_retryable(e: Exception) -> bool:
    if isinstance(e, requests.exceptions.HTTPError):
        return e.response is not None and should_retry_http_status(e.response.status_code)
    return True


def _log_retry(attempt: int, e: Exception, delay: float) -> None:
    logger.warning("Token exchange failed, retrying", attempt=attempt, delay=delay, error=str(e))


@exponential_backoff(
    max_retries=3,
    base_delay=1.0,
    exceptions=(
        requests.exceptions.Timeout,
        requests.exceptions.ConnectionError,
        requests.exceptions.HTTPError,
    ),
    retry_if=_is_retryable,
    on_retry=_log_retry,
)
def _request_token(client_id: str, client_secret: str, timeout: float = 15) -> dict:
    logger.record_api_call()
    resp = requests.post(
        TOKEN_URL,
        params={
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "client_credentials",
        },
        timeout=timeout,
    )
    resp.raise_for_status()
    return resp.json()


class TwitchAuthClient:
    """
    Fetches and caches an app access token.

    Credentials default to TWITCH_CLIENT_ID / TWITCH_CLIENT_SECRET and are
    read on first use, so a missing credential surfaces when the run
    authenticates rather than at construction.
    """

    def __init__(self, client_id: Optional[str] = None, client_secret: Optional[str] = None):
        self._client_id = client_id
        self._client_secret = client_secret
        self._token: Optional[Token] = None

    def get_token(self) -> Token:
        if self._token is not None:
            return self._token

        if self._client_id and self._client_secret:
            client_id, client_secret = self._client_id, self._client_secret
        else:
            client_id, client_secret = twitch_credentials()

        try:
            data = _request_token(client_id, client_secret)
        except (RetryError, requests.exceptions.RequestException, ValueError) as e:
            logger.critical("Twitch token exchange failed", error=str(e))
            raise ConfigurationError(f"Twitch token exchange failed: {e}") from e

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise ConfigurationError("No IGDB token in Twitch OAuth response")

        self._token = Token(
            access_token=access_token,
            client_id=client_id,
            expires_in=data.get("expires_in"),
        )
        logger.debug("Obtained IGDB access token", expires_in=self._token.expires_in)
        return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next call exchanges credentials again."""
        self._token = None
