from unittest.mock import MagicMock

import pytest
import requests

from extpublish import utils
from extpublish.exceptions import NetworkError

pytestmark = pytest.mark.unit


class TestBuildSession:
    def test_retries_only_idempotent_connects(self):
        session = utils.build_session()
        retry = session.get_adapter("https://api.github.com").max_retries

        assert retry.allowed_methods == frozenset({"GET", "HEAD"})
        assert retry.read == 0
        assert retry.status == 0
        assert session.headers["User-Agent"].startswith("extpublish/")
        session.close()


class TestSendRequest:
    def test_default_timeout(self, mock_session, make_response):
        mock_session.request.return_value = make_response(200)

        utils.send_request(mock_session, "GET", "https://example.org")

        mock_session.request.assert_called_once_with(
            "GET", "https://example.org", timeout=30
        )

    def test_error_status_is_returned(self, mock_session, make_response):
        mock_session.request.return_value = make_response(500)

        response = utils.send_request(mock_session, "POST", "https://example.org")

        assert response.status_code == 500

    def test_transport_failure(self, mock_session):
        mock_session.request.side_effect = requests.Timeout("slow")

        with pytest.raises(NetworkError) as exc_info:
            utils.send_request(mock_session, "GET", "https://example.org", timeout=5)

        assert exc_info.value.url == "https://example.org"
        assert "slow" in exc_info.value.details


class TestUserAgent:
    def test_unknown_version(self, monkeypatch):
        monkeypatch.setattr(utils, "_USER_AGENT_CACHE", None)
        monkeypatch.setattr(
            utils.importlib.metadata,
            "version",
            MagicMock(side_effect=utils.importlib.metadata.PackageNotFoundError),
        )

        assert utils.get_user_agent() == "extpublish/unknown"
