import pytest
import requests

from extpublish.exceptions import IntegrityMismatchError
from extpublish.listing import extension_name_from_listing, verify_listing_name

pytestmark = pytest.mark.unit

LISTING_URL = "https://chromewebstore.google.com/detail/abcdefghijklmnop"


class TestExtensionNameFromListing:
    def test_title_before_dash(self, mock_session, make_response):
        mock_session.request.return_value = make_response(
            200, text="<html><title>Blocker Lite - Chrome Web Store</title></html>"
        )

        assert extension_name_from_listing(mock_session, LISTING_URL) == "Blocker Lite"

    def test_title_without_dash(self, mock_session, make_response):
        mock_session.request.return_value = make_response(
            200, text="<title>Blocker</title>"
        )

        assert extension_name_from_listing(mock_session, LISTING_URL) == "Blocker"

    def test_no_title(self, mock_session, make_response):
        mock_session.request.return_value = make_response(200, text="<html></html>")

        assert extension_name_from_listing(mock_session, LISTING_URL) == "?"

    def test_error_status(self, mock_session, make_response):
        mock_session.request.return_value = make_response(404, text="<title>Gone</title>")

        assert extension_name_from_listing(mock_session, LISTING_URL) == "?"

    def test_network_failure(self, mock_session):
        mock_session.request.side_effect = requests.ConnectionError("unreachable")

        assert extension_name_from_listing(mock_session, LISTING_URL) == "?"


class TestVerifyListingName:
    def test_match(self):
        verify_listing_name("Blocker", "Blocker")

    def test_mismatch(self):
        with pytest.raises(IntegrityMismatchError) as exc_info:
            verify_listing_name("Blocker", "Other")

        assert exc_info.value.manifest_name == "Blocker"
        assert exc_info.value.listing_name == "Other"

    def test_unknown_listing_name_is_a_mismatch(self):
        with pytest.raises(IntegrityMismatchError):
            verify_listing_name("Blocker", "?")

    def test_unnamed_package_is_not_checked(self):
        verify_listing_name(None, "Blocker")
