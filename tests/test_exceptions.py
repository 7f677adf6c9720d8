"""
Tests for the extpublish exception hierarchy and message formatting.
"""

import pytest

from extpublish.exceptions import (
    AutoUpdateError,
    ConfigFileError,
    ConfigurationError,
    ConfirmationDeclinedError,
    ExtPublishError,
    HTTPError,
    IntegrityMismatchError,
    NetworkError,
    PackageError,
    PollTimeoutError,
    PublishDisabledError,
    ReleaseError,
    StatusCheckError,
    StoreError,
    StoreRejectedError,
)

pytestmark = pytest.mark.unit


class TestExtPublishError:
    def test_basic_message(self):
        error = ExtPublishError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.details is None

    def test_message_with_details(self):
        error = ExtPublishError("Operation failed", details="Connection timeout")
        assert str(error) == "Operation failed - Connection timeout"
        assert error.message == "Operation failed"


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_class,parent",
        [
            (ConfigFileError, ConfigurationError),
            (HTTPError, NetworkError),
            (StoreRejectedError, StoreError),
            (PollTimeoutError, StoreError),
            (StatusCheckError, StoreError),
            (ReleaseError, ExtPublishError),
            (PackageError, ExtPublishError),
            (IntegrityMismatchError, ExtPublishError),
            (PublishDisabledError, ExtPublishError),
            (AutoUpdateError, ExtPublishError),
            (StoreError, ExtPublishError),
            (NetworkError, ExtPublishError),
        ],
    )
    def test_subclassing(self, exc_class, parent):
        assert issubclass(exc_class, parent)


class TestStoreErrors:
    def test_rejected_keeps_raw_status(self):
        error = StoreRejectedError("AMO", "validation failed")

        assert error.store == "AMO"
        assert error.status == "validation failed"
        assert str(error) == "AMO rejected the submission - validation failed"

    def test_timeout(self):
        error = PollTimeoutError("Edge Add-ons", 15, 900)

        assert error.message == "Edge Add-ons timed out"
        assert error.attempts == 15
        assert "900s" in str(error)

    def test_status_check(self):
        error = StatusCheckError("AMO", "server error 502", 502)

        assert error.status_code == 502
        assert str(error) == "AMO status check failed - server error 502"


class TestOtherErrors:
    def test_http_error_attributes(self):
        error = HTTPError("Upload failed", status_code=400, url="https://x")

        assert error.status_code == 400
        assert error.url == "https://x"

    def test_integrity_mismatch(self):
        error = IntegrityMismatchError("Blocker", "?")

        assert '"Blocker" != "?"' in str(error)

    def test_confirmation_declined(self):
        assert str(ConfirmationDeclinedError()) == "Aborted"

    def test_package_error_path(self):
        error = PackageError("Invalid manifest file", package_path="/tmp/x.zip")

        assert error.package_path == "/tmp/x.zip"
