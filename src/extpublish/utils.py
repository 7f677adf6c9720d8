# src/extpublish/utils.py
import importlib.metadata
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from extpublish.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
)
from extpublish.exceptions import NetworkError
from extpublish.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `extpublish/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version("extpublish")
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"extpublish/{app_version}"

    return _USER_AGENT_CACHE


def build_session() -> requests.Session:
    """
    Create the HTTP session shared by one publish run.

    Only connection establishment of idempotent requests (GET/HEAD) is retried.
    HTTP error statuses are never retried, and neither is anything that submits
    data to a store or to GitHub.
    """
    session = requests.Session()
    retry_strategy = Retry(
        total=DEFAULT_CONNECT_RETRIES,
        connect=DEFAULT_CONNECT_RETRIES,
        read=0,
        status=0,
        backoff_factor=DEFAULT_BACKOFF_FACTOR,
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = get_user_agent()
    return session


def send_request(
    session: requests.Session, method: str, url: str, **kwargs: Any
) -> requests.Response:
    """
    Send one HTTP request and return the response whatever its status.

    Parameters:
        session (requests.Session): Session to send the request with.
        method (str): HTTP method.
        url (str): Target URL.
        **kwargs: Passed through to `Session.request`; `timeout` defaults to DEFAULT_REQUEST_TIMEOUT.

    Returns:
        requests.Response: The server response. HTTP error statuses are not raised; callers decide what a failure is.

    Raises:
        NetworkError: If the request could not be completed (DNS, connection, timeout, ...).
    """
    kwargs.setdefault("timeout", DEFAULT_REQUEST_TIMEOUT)
    logger.debug(f"{method} {url}")
    try:
        response = session.request(method, url, **kwargs)
    except requests.RequestException as e:
        logger.error(f"Request to {url} failed: {e}")
        raise NetworkError(f"{method} {url} failed", url=url, details=str(e)) from e
    logger.debug(f"Received HTTP {response.status_code} for {method} {url}")
    return response
