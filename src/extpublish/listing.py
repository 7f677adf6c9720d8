"""
Store listing identity checks.

Before anything is uploaded, the name carried by the package must match the
name of the store listing it is about to replace.
"""

import re
from typing import Optional

import requests

from extpublish.constants import UNKNOWN_LISTING_NAME
from extpublish.exceptions import IntegrityMismatchError, NetworkError
from extpublish.log_utils import logger
from extpublish.utils import send_request

_TITLE_RX = re.compile(r"<title>([^-<]+)[^<]*?</title>")


def extension_name_from_listing(session: requests.Session, listing_url: str) -> str:
    """
    Read the extension name from a public store listing page.

    Returns:
        str: The part of the page title before the first dash, or "?" when the
        page cannot be fetched or has no usable title.
    """
    try:
        response = send_request(session, "GET", listing_url)
    except NetworkError:
        return UNKNOWN_LISTING_NAME
    if not response.ok:
        logger.warning(f"Store listing {listing_url} returned {response.status_code}")
        return UNKNOWN_LISTING_NAME
    match = _TITLE_RX.search(response.text)
    if match is None:
        return UNKNOWN_LISTING_NAME
    return match.group(1).strip()


def verify_listing_name(manifest_name: Optional[str], listing_name: str) -> None:
    """
    Raises:
        IntegrityMismatchError: If the package has a name and it differs from the listing.
    """
    if manifest_name and manifest_name != listing_name:
        raise IntegrityMismatchError(manifest_name, listing_name)
