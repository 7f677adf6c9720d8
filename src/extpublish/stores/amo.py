"""
Mozilla AMO (addons.mozilla.org) submitter.

Submitting a version asks AMO to sign it. Listed versions are then reviewed on
AMO's side and nothing more happens here; unlisted (self-hosted) versions are
polled until the signed package can be downloaded.
"""

import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

import jwt
import requests

from extpublish.constants import (
    AMO_JWT_LIFETIME,
    AMO_POLL_INTERVAL,
    AMO_POLL_TICK,
    AMO_POLL_TIMEOUT,
    AMO_SIGNING_URL,
    AMO_VERSION_URL,
    UPLOAD_REQUEST_TIMEOUT,
)
from extpublish.credentials import CredentialStore
from extpublish.exceptions import HTTPError, StoreError
from extpublish.log_utils import logger
from extpublish.utils import send_request

from .base import (
    PollOutcome,
    RetryBudget,
    StoreConfig,
    StoreSubmitter,
    SubmissionHandle,
    SubmitResult,
    json_object,
)

STORE_NAME = "AMO"
CHANNEL_UNLISTED = "unlisted"
HANDLE_SIGNING = "signing"
HANDLE_VERSION = "version"

# The attempt count follows the nominal 3 minute interval over 30 minutes,
# while checks actually happen every minute.
AMO_SIGNING_POLL_BUDGET = RetryBudget(
    interval_seconds=AMO_POLL_TICK,
    max_attempts=AMO_POLL_TIMEOUT // AMO_POLL_INTERVAL,
)
# A single, immediate lookup of an already submitted version
AMO_SIGNED_CHECK_BUDGET = RetryBudget(interval_seconds=0, max_attempts=1)
REQUIRED_CREDENTIALS = ("amo_api_key", "amo_secret")


def signing_outcome(details: Dict[str, Any]) -> PollOutcome:
    """Interpret the answer of the v4 signing status endpoint."""
    if details.get("processed") is not True:
        return PollOutcome.pending()
    if details.get("valid") is not True:
        return PollOutcome.rejected("validation failed")
    files = details.get("files")
    if not isinstance(files, list) or not files:
        return PollOutcome.pending()
    first = files[0] if isinstance(files[0], dict) else {}
    if first.get("signed") is not True:
        return PollOutcome.pending()
    download_url = first.get("download_url")
    if not download_url:
        return PollOutcome.rejected("signing failed")
    return PollOutcome.ready(download_url)


def version_file_outcome(details: Dict[str, Any]) -> PollOutcome:
    """Interpret the file status of the v5 version endpoint."""
    file_info = details.get("file") or {}
    status = file_info.get("status")
    logger.info(f"AMO validation: {status}")
    if status == "disabled":
        return PollOutcome.rejected(status)
    if status == "unreviewed":
        return PollOutcome.pending()
    url = file_info.get("url")
    if not url:
        return PollOutcome.rejected(f"{status}: no file URL")
    return PollOutcome.ready(url)


class AmoSubmitter(StoreSubmitter):
    def __init__(
        self,
        session: requests.Session,
        credentials: CredentialStore,
        addon_id: str,
        version: str,
        channel: str,
        budget: RetryBudget = AMO_SIGNING_POLL_BUDGET,
    ) -> None:
        super().__init__(session, StoreConfig(STORE_NAME, budget))
        self.credentials = credentials
        self.addon_id = addon_id
        self.version = version
        self.channel = channel

    def auth_header(self) -> str:
        """Build a short-lived JWT authorization header value."""
        creds = self.credentials.require(*REQUIRED_CREDENTIALS)
        now = int(time.time())
        payload = {
            "iss": creds["amo_api_key"],
            "jti": os.urandom(8).hex(),
            "iat": now,
            "exp": now + AMO_JWT_LIFETIME,
        }
        token = jwt.encode(payload, creds["amo_secret"], algorithm="HS256")
        return f"JWT {token}"

    def download_headers(self) -> Dict[str, str]:
        return {"Authorization": self.auth_header()}

    def submit(self, package_path: Path) -> SubmitResult:
        package_path = Path(package_path)
        url = AMO_SIGNING_URL.format(addon_id=self.addon_id, version=self.version)
        logger.info("Submitting package to be signed...")
        logger.info(f"  {url}")
        # AMO checks the uploaded file name extension (.xpi/.zip/.crx)
        with open(package_path, "rb") as fh:
            response = send_request(
                self.session,
                "PUT",
                url,
                data={"channel": self.channel},
                files={"upload": (package_path.name, fh)},
                headers={"Authorization": self.auth_header()},
                timeout=UPLOAD_REQUEST_TIMEOUT,
            )
        if not response.ok:
            raise HTTPError(
                "Creating new version failed",
                status_code=response.status_code,
                url=url,
                details=f"server error {response.status_code}",
            )
        logger.info("Request for signing package succeeded")
        if self.channel != CHANNEL_UNLISTED:
            return SubmitResult.immediate(PollOutcome.ready())
        check_url = (json_object(response) or {}).get("url")
        if not check_url:
            raise StoreError("Signing request returned no status URL", STORE_NAME)
        return SubmitResult.deferred(SubmissionHandle(check_url, kind=HANDLE_SIGNING))

    def signed_version_handle(self) -> SubmissionHandle:
        """Handle for looking up the signed file of an already submitted version."""
        url = AMO_VERSION_URL.format(addon_id=self.addon_id, version=self.version)
        return SubmissionHandle(url, kind=HANDLE_VERSION)

    def check_status(self, handle: SubmissionHandle) -> PollOutcome:
        headers = {"Accept": "application/json", "Authorization": self.auth_header()}
        response = send_request(self.session, "GET", handle.value, headers=headers)
        if not response.ok:
            return PollOutcome.transient(
                f"server error {response.status_code}", response.status_code
            )
        details = json_object(response)
        if details is None:
            return PollOutcome.transient("invalid status payload", response.status_code)
        if handle.kind == HANDLE_VERSION:
            return version_file_outcome(details)
        return signing_outcome(details)

    def publish(self, handle: Optional[SubmissionHandle] = None) -> None:
        # Listed versions go live after AMO's own review
        logger.debug("AMO has no separate publish step")
