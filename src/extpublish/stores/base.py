"""
Core interfaces for store submission.

This module defines the data structures exchanged between a store submitter
and the shared polling loop, and the abstract StoreSubmitter interface every
store implements.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from extpublish.exceptions import HTTPError
from extpublish.log_utils import logger
from extpublish.utils import send_request


def json_object(response: requests.Response) -> Optional[Dict[str, Any]]:
    """Decode a JSON object body; None when the body is not JSON or not an object."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


@dataclass(frozen=True)
class RetryBudget:
    """Timeout envelope for a poll loop."""

    interval_seconds: int
    """Seconds to wait before each status check"""

    max_attempts: int
    """Number of status checks allowed before giving up"""

    @property
    def max_wait_seconds(self) -> int:
        return self.interval_seconds * self.max_attempts


@dataclass
class SubmissionHandle:
    """
    Opaque reference returned by a store after an initial upload.

    A handle belongs to exactly one publish attempt and may be polled by one
    loop only; `consumed` is set when a poll loop takes ownership of it.
    """

    value: str
    """Operation id or status URL, depending on the store"""

    kind: str = "submission"
    """What the handle refers to, for stores with more than one status endpoint"""

    consumed: bool = field(default=False, compare=False)


class PollStatus(enum.Enum):
    PENDING = "pending"
    READY = "ready"
    REJECTED = "rejected"
    TRANSIENT_ERROR = "transient_error"


@dataclass(frozen=True)
class PollOutcome:
    """Result of a single status check."""

    status: PollStatus
    locator: Optional[str] = None
    """URL of the downloadable artifact, for READY outcomes that have one"""

    reason: Optional[str] = None
    """Raw store status or error text, for REJECTED and TRANSIENT_ERROR"""

    status_code: Optional[int] = None

    @classmethod
    def pending(cls) -> "PollOutcome":
        return cls(PollStatus.PENDING)

    @classmethod
    def ready(cls, locator: Optional[str] = None) -> "PollOutcome":
        return cls(PollStatus.READY, locator=locator)

    @classmethod
    def rejected(cls, reason: Optional[str]) -> "PollOutcome":
        return cls(PollStatus.REJECTED, reason=reason)

    @classmethod
    def transient(
        cls, reason: Optional[str], status_code: Optional[int] = None
    ) -> "PollOutcome":
        return cls(PollStatus.TRANSIENT_ERROR, reason=reason, status_code=status_code)

    @property
    def is_terminal(self) -> bool:
        return self.status in (PollStatus.READY, PollStatus.REJECTED)


@dataclass(frozen=True)
class SubmitResult:
    """
    Result of the initial submission call.

    Exactly one of `handle` (asynchronous store, poll for completion) or
    `outcome` (store answered synchronously) is set.
    """

    handle: Optional[SubmissionHandle] = None
    outcome: Optional[PollOutcome] = None

    def __post_init__(self) -> None:
        if (self.handle is None) == (self.outcome is None):
            raise ValueError("SubmitResult needs exactly one of handle or outcome")

    @classmethod
    def deferred(cls, handle: SubmissionHandle) -> "SubmitResult":
        return cls(handle=handle)

    @classmethod
    def immediate(cls, outcome: PollOutcome) -> "SubmitResult":
        return cls(outcome=outcome)


@dataclass(frozen=True)
class StoreConfig:
    """Per-store polling configuration."""

    name: str
    budget: RetryBudget
    escalate_check_failures: bool = True
    """Abort on the first failed status check instead of spending an attempt on it"""


class StoreSubmitter(ABC):
    """
    Abstract base class for extension store submitters.

    Subclasses translate the store's HTTP API into the submit / check_status /
    publish vocabulary; the retry loop itself is shared (see `stores.poll`).
    """

    def __init__(self, session: requests.Session, config: StoreConfig) -> None:
        self.session = session
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    @abstractmethod
    def submit(self, package_path: Path) -> SubmitResult:
        """
        Upload a package to the store.

        Called once per publish attempt; never retried, a second call could
        create a duplicate review entry on the store side.
        """

    @abstractmethod
    def check_status(self, handle: SubmissionHandle) -> PollOutcome:
        """Issue one status check for a submission and interpret the answer."""

    @abstractmethod
    def publish(self, handle: Optional[SubmissionHandle] = None) -> None:
        """Make a processed submission public. Raises on failure."""

    def download_headers(self) -> Dict[str, str]:
        return {}

    def download_artifact(self, locator: str, dest_path: Path) -> Path:
        """
        Download a store-produced artifact (e.g. a signed package).

        The bytes are written to `dest_path` only after the store answered with
        a success status.
        """
        logger.info(f"Downloading {self.name} artifact from {locator}...")
        headers = {"Accept": "application/octet-stream"}
        headers.update(self.download_headers())
        response = send_request(self.session, "GET", locator, headers=headers)
        if not response.ok:
            raise HTTPError(
                f"Download of {self.name} artifact failed",
                status_code=response.status_code,
                url=locator,
                details=f"server error {response.status_code}",
            )
        dest_path = Path(dest_path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        dest_path.write_bytes(response.content)
        logger.info(f"Artifact downloaded at {dest_path}")
        return dest_path
