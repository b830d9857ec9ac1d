"""Shared HTTP handling for all outbound clients."""

import requests

from ..errors import ExternalCallFailure
from ..logger import get_logger

logger = get_logger()


def post_with_error_handling(url: str, service: str, timeout: float = 20, **kwargs) -> requests.Response:
    """POST with standardized error handling and logging.

    Args:
        url: Endpoint to call
        service: Service name for logging and metrics (e.g. 'igdb', 'translate')
        timeout: Request timeout in seconds
        **kwargs: Passed through to requests.post (data, json, headers, params)

    Returns:
        Response object on success

    Raises:
        ExternalCallFailure: On any HTTP error, timeout, or request failure
    """
    logger.record_api_call()
    try:
        resp = requests.post(url, timeout=timeout, **kwargs)
        resp.raise_for_status()
        return resp
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        logger.record_error(f"{service}_HTTPError_{status}")
        logger.warning(f"{service} request failed", url=url, status=status)
        raise ExternalCallFailure(service, f"request failed ({status})", status=status)
    except requests.exceptions.Timeout:
        logger.record_error(f"{service}_Timeout")
        logger.warning(f"{service} request timed out", url=url)
        raise ExternalCallFailure(service, "request timed out")
    except requests.exceptions.RequestException as e:
        logger.record_error(f"{service}_RequestException")
        logger.error(f"{service} request error", url=url, error=str(e))
        raise ExternalCallFailure(service, f"request error: {e}")


def json_or_none(resp: requests.Response):
    """Decoded JSON body, or None when the body is not JSON."""
    try:
        return resp.json()
    except ValueError:
        return None
