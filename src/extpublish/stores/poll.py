"""
Shared submission and polling protocol.

A submission is uploaded exactly once. Stores that accept the package
synchronously answer with a terminal outcome right away; the others hand back
a SubmissionHandle which is polled here until the store reports a terminal
status or the retry budget runs out.
"""

import time
from pathlib import Path
from typing import Callable, Optional

from extpublish.exceptions import (
    PollTimeoutError,
    StatusCheckError,
    StoreError,
    StoreRejectedError,
)
from extpublish.log_utils import logger

from .base import PollOutcome, PollStatus, RetryBudget, SubmissionHandle, StoreSubmitter


def wait_for_outcome(
    submitter: StoreSubmitter,
    handle: SubmissionHandle,
    budget: Optional[RetryBudget] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PollOutcome:
    """
    Poll a submission until the store reports it ready.

    Every attempt sleeps `budget.interval_seconds`, consumes one attempt and
    issues exactly one status check, so the loop never waits longer than
    `budget.max_wait_seconds`.

    Parameters:
        submitter: Store the submission was made to.
        handle: Handle returned by the submission; it is consumed by this call.
        budget: Timeout envelope; defaults to the store's configured budget.
        sleep: Blocking sleep function, replaceable for tests.

    Returns:
        PollOutcome: The READY outcome, with the artifact locator when the store
        produced one.

    Raises:
        StoreRejectedError: The store reported a failed/invalid submission.
        StatusCheckError: A status check call failed and the store escalates
            such failures.
        PollTimeoutError: The submission was still pending when the budget ran out.
    """
    if handle.consumed:
        raise ValueError(f"Submission handle {handle.value} was already polled")
    handle.consumed = True

    budget = budget or submitter.config.budget
    store = submitter.name
    remaining = budget.max_attempts
    checks = 0

    while remaining > 0:
        if budget.interval_seconds > 0:
            sleep(budget.interval_seconds)
        remaining -= 1
        checks += 1

        outcome = submitter.check_status(handle)

        if outcome.status is PollStatus.PENDING:
            logger.info(f"{store} is still processing ({remaining} checks left)")
            continue
        if outcome.status is PollStatus.TRANSIENT_ERROR:
            if submitter.config.escalate_check_failures:
                raise StatusCheckError(store, outcome.reason, outcome.status_code)
            logger.warning(
                f"{store} status check failed: {outcome.reason} ({remaining} checks left)"
            )
            continue
        if outcome.status is PollStatus.REJECTED:
            raise StoreRejectedError(store, outcome.reason)

        logger.info(f"{store} finished processing after {checks} checks")
        return outcome

    raise PollTimeoutError(store, checks, budget.max_wait_seconds)


def submit_and_wait(
    submitter: StoreSubmitter,
    package_path: Path,
    budget: Optional[RetryBudget] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PollOutcome:
    """
    Submit a package and wait until the store accepted it.

    Returns:
        PollOutcome: The READY outcome (immediate or polled).
    """
    logger.info(f"Submitting {Path(package_path).name} to {submitter.name}...")
    result = submitter.submit(Path(package_path))

    if result.outcome is None:
        logger.info(f"Waiting for {submitter.name} to process the submission...")
        return wait_for_outcome(submitter, result.handle, budget, sleep)

    outcome = result.outcome
    if outcome.status is PollStatus.REJECTED:
        raise StoreRejectedError(submitter.name, outcome.reason)
    if outcome.status is not PollStatus.READY:
        raise StoreError(
            "Unexpected answer to submission",
            submitter.name,
            details=outcome.reason or outcome.status.value,
        )
    logger.info(f"{submitter.name} accepted the submission")
    return outcome
