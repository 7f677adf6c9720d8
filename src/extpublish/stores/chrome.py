"""
Chrome Web Store submitter.

Uploads are usually processed synchronously; an upload reported as
IN_PROGRESS is polled through the item's draft projection.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from extpublish.constants import (
    CHROME_POLL_INTERVAL,
    CHROME_POLL_TIMEOUT,
    CWS_ITEM_URL,
    CWS_OAUTH_TOKEN_URL,
    CWS_PUBLISH_URL,
    CWS_UPLOAD_URL,
    UPLOAD_REQUEST_TIMEOUT,
)
from extpublish.credentials import CredentialStore
from extpublish.exceptions import HTTPError, StoreError, StoreRejectedError
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

STORE_NAME = "Chrome Web Store"
CHROME_POLL_BUDGET = RetryBudget(
    interval_seconds=CHROME_POLL_INTERVAL,
    max_attempts=CHROME_POLL_TIMEOUT // CHROME_POLL_INTERVAL,
)
REQUIRED_CREDENTIALS = ("cws_client_id", "cws_client_secret", "cws_refresh_token")


def _upload_state_outcome(details: Dict[str, Any]) -> PollOutcome:
    state = details.get("uploadState")
    if state == "SUCCESS":
        return PollOutcome.ready()
    if state == "IN_PROGRESS":
        return PollOutcome.pending()
    return PollOutcome.rejected(json.dumps(details))


class ChromeWebStoreSubmitter(StoreSubmitter):
    def __init__(
        self,
        session: requests.Session,
        credentials: CredentialStore,
        item_id: str,
        budget: RetryBudget = CHROME_POLL_BUDGET,
    ) -> None:
        super().__init__(session, StoreConfig(STORE_NAME, budget))
        self.credentials = credentials
        self.item_id = item_id
        self._access_token: Optional[str] = None

    def access_token(self) -> str:
        """Exchange the refresh token for an OAuth access token (once per run)."""
        if self._access_token is None:
            creds = self.credentials.require(*REQUIRED_CREDENTIALS)
            logger.info("Generating access token...")
            response = send_request(
                self.session,
                "POST",
                CWS_OAUTH_TOKEN_URL,
                data={
                    "client_id": creds["cws_client_id"],
                    "client_secret": creds["cws_client_secret"],
                    "grant_type": "refresh_token",
                    "refresh_token": creds["cws_refresh_token"],
                },
            )
            if not response.ok:
                raise HTTPError(
                    "Auth failed",
                    status_code=response.status_code,
                    url=CWS_OAUTH_TOKEN_URL,
                    details=f"server error {response.reason}",
                )
            token = (json_object(response) or {}).get("access_token")
            if not token:
                raise StoreError(
                    "Auth failed -- no access token", STORE_NAME, details=response.text
                )
            self._access_token = token
        return self._access_token

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.access_token()}",
            "x-goog-api-version": "2",
        }
        headers.update(extra)
        return headers

    def submit(self, package_path: Path) -> SubmitResult:
        data = Path(package_path).read_bytes()
        url = CWS_UPLOAD_URL.format(item_id=self.item_id)
        logger.info("Uploading package...")
        response = send_request(
            self.session,
            "PUT",
            url,
            data=data,
            headers=self._headers(),
            timeout=UPLOAD_REQUEST_TIMEOUT,
        )
        if not response.ok:
            raise HTTPError(
                "Upload failed",
                status_code=response.status_code,
                url=url,
                details=f"server error {response.reason}",
            )
        details = json_object(response)
        if details is None:
            raise StoreError(
                "Upload failed -- invalid response", STORE_NAME, details=response.text
            )
        outcome = _upload_state_outcome(details)
        if outcome.is_terminal:
            return SubmitResult.immediate(outcome)
        return SubmitResult.deferred(SubmissionHandle(self.item_id))

    def check_status(self, handle: SubmissionHandle) -> PollOutcome:
        url = CWS_ITEM_URL.format(item_id=handle.value)
        response = send_request(
            self.session,
            "GET",
            url,
            params={"projection": "DRAFT"},
            headers=self._headers(),
        )
        if response.status_code != 200:
            return PollOutcome.transient(
                f"server error {response.status_code}", response.status_code
            )
        details = json_object(response)
        if details is None:
            return PollOutcome.transient("invalid status payload", response.status_code)
        return _upload_state_outcome(details)

    def publish(self, handle: Optional[SubmissionHandle] = None) -> None:
        url = CWS_PUBLISH_URL.format(item_id=self.item_id)
        logger.info("Publishing package...")
        response = send_request(
            self.session,
            "POST",
            url,
            headers=self._headers(**{"Content-Length": "0"}),
        )
        if not response.ok:
            raise HTTPError(
                "Chrome store publishing failed",
                status_code=response.status_code,
                url=url,
                details=f"server error {response.reason}",
            )
        details = json_object(response)
        if details is None:
            raise StoreError(
                "Chrome store publishing failed -- invalid response",
                STORE_NAME,
                details=response.text,
            )
        status = details.get("status")
        if not isinstance(status, list) or "OK" not in status:
            raise StoreRejectedError(STORE_NAME, str(status))
        logger.info("Publishing succeeded.")
