"""
Microsoft Edge Add-ons submitter.

A package upload starts an asynchronous operation whose id comes back in the
Location header; the operation is polled until the package is ready to be
published.
"""

from pathlib import Path
from typing import Dict, Optional

import requests

from extpublish.constants import (
    EDGE_OPERATION_URL,
    EDGE_POLL_INTERVAL,
    EDGE_POLL_TIMEOUT,
    EDGE_PUBLISH_URL,
    EDGE_UPLOAD_URL,
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

STORE_NAME = "Edge Add-ons"
# check every 60 seconds, for at most 15 minutes
EDGE_POLL_BUDGET = RetryBudget(
    interval_seconds=EDGE_POLL_INTERVAL,
    max_attempts=EDGE_POLL_TIMEOUT // EDGE_POLL_INTERVAL,
)
REQUIRED_CREDENTIALS = ("edge_api_key", "edge_client_id")


class EdgeAddonsSubmitter(StoreSubmitter):
    def __init__(
        self,
        session: requests.Session,
        credentials: CredentialStore,
        product_id: str,
        publish_notes: str,
        budget: RetryBudget = EDGE_POLL_BUDGET,
    ) -> None:
        super().__init__(session, StoreConfig(STORE_NAME, budget))
        self.credentials = credentials
        self.product_id = product_id
        self.publish_notes = publish_notes

    def _headers(self, **extra: str) -> Dict[str, str]:
        creds = self.credentials.require(*REQUIRED_CREDENTIALS)
        headers = {
            "Authorization": f"ApiKey {creds['edge_api_key']}",
            "X-ClientID": creds["edge_client_id"],
        }
        headers.update(extra)
        return headers

    @property
    def upload_url(self) -> str:
        return EDGE_UPLOAD_URL.format(product_id=self.product_id)

    def submit(self, package_path: Path) -> SubmitResult:
        data = Path(package_path).read_bytes()
        logger.info(f"Uploading package to {self.upload_url}")
        response = send_request(
            self.session,
            "POST",
            self.upload_url,
            data=data,
            headers=self._headers(**{"Content-Type": "application/zip"}),
            timeout=UPLOAD_REQUEST_TIMEOUT,
        )
        if response.status_code != 202:
            raise HTTPError(
                "Upload failed",
                status_code=response.status_code,
                url=self.upload_url,
                details=f"server error {response.status_code}",
            )
        operation_id = response.headers.get("Location")
        if not operation_id:
            raise StoreError("Upload failed -- missing Location header", STORE_NAME)
        logger.info("Upload succeeded")
        return SubmitResult.deferred(SubmissionHandle(operation_id))

    def check_status(self, handle: SubmissionHandle) -> PollOutcome:
        url = EDGE_OPERATION_URL.format(
            product_id=self.product_id, operation_id=handle.value
        )
        response = send_request(self.session, "GET", url, headers=self._headers())
        if response.status_code != 200:
            return PollOutcome.transient(
                f"server error {response.status_code}", response.status_code
            )
        details = json_object(response)
        if details is None:
            return PollOutcome.transient("invalid status payload", response.status_code)
        status = details.get("status")
        if status == "InProgress":
            return PollOutcome.pending()
        if status is None or status == "Failed":
            message = details.get("message")
            reason = f"{status}: {message}" if message else str(status)
            return PollOutcome.rejected(reason)
        logger.info("Package ready to be published.")
        return PollOutcome.ready()

    def publish(self, handle: Optional[SubmissionHandle] = None) -> None:
        url = EDGE_PUBLISH_URL.format(product_id=self.product_id)
        logger.info("Publish package...")
        response = send_request(
            self.session,
            "POST",
            url,
            json={"Notes": self.publish_notes},
            headers=self._headers(),
        )
        if response.status_code != 202:
            raise HTTPError(
                "Publish failed",
                status_code=response.status_code,
                url=url,
                details=f"server error {response.status_code}",
            )
        if not response.headers.get("Location"):
            raise StoreError("Publish failed -- missing Location header", STORE_NAME)
        logger.info("Publish succeeded.")
