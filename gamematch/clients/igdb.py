from typing import List

from ..errors import ExternalCallFailure
from ..logger import get_logger
from ..schema import Candidate, parse_candidates
from .common import json_or_none, post_with_error_handling

logger = get_logger()

IGDB_API = "https://api.igdb.com/v4"


class IGDBSearchClient:
    """
    Catalog search against IGDB's /games endpoint.

    search() never raises for a failed call: a non-success response, a
    timeout or a body that is not a JSON list all count as zero candidates.
    """

    def __init__(self, auth, base_url: str = IGDB_API, timeout: float = 20):
        self.auth = auth
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def authenticate(self) -> None:
        """Exchange credentials up front. Raises ConfigurationError."""
        self.auth.get_token()

    def search(self, query: str) -> List[Candidate]:
        token = self.auth.get_token()
        headers = {
            "Client-ID": token.client_id,
            "Authorization": f"Bearer {token.access_token}",
            "Accept": "application/json",
        }
        try:
            resp = post_with_error_handling(
                f"{self.base_url}/games",
                "igdb",
                timeout=self.timeout,
                data=query.encode("utf-8"),
                headers=headers,
            )
        except ExternalCallFailure as e:
            if e.status == 401:
                self.auth.invalidate()
            logger.debug("IGDB search treated as empty", query=query, error=str(e))
            return []

        data = json_or_none(resp)
        if not isinstance(data, list):
            logger.warning("IGDB returned a non-list body", query=query)
            return []
        return parse_candidates(data)
