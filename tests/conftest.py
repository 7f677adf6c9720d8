import io
import json
import time
import zipfile
from unittest.mock import MagicMock

import platformdirs
import pytest
import requests

from extpublish.config import PublishSettings
from extpublish.credentials import CredentialStore

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)

CREDENTIAL_ENV_VARS = (
    "GITHUB_TOKEN",
    "AMO_API_KEY",
    "AMO_SECRET",
    "EDGE_API_KEY",
    "EDGE_CLIENT_ID",
    "CWS_ID",
    "CWS_SECRET",
    "CWS_REFRESH",
    "CWS_CLIENT_ID",
    "CWS_CLIENT_SECRET",
    "CWS_REFRESH_TOKEN",
    "EXTPUBLISH_LOG_LEVEL",
)

TEST_CREDENTIALS = {
    "github_token": "gh-token",
    "amo_api_key": "user:12345:67",
    "amo_secret": "amo-secret",
    "edge_api_key": "edge-key",
    "edge_client_id": "edge-client",
    "cws_client_id": "cws-id",
    "cws_client_secret": "cws-secret",
    "cws_refresh_token": "cws-refresh",
}


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used to group tests."""
    for marker, description in (
        ("unit", "fast isolated tests"),
        ("core", "submission and polling protocol tests"),
        ("integration", "end-to-end publish flows with mocked services"),
        ("configuration", "configuration and credential handling"),
    ):
        config.addinivalue_line("markers", f"{marker}: {description}")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs at temporary directories and remove credentials from the environment.
    """
    base = tmp_path_factory.mktemp("extpublish")
    config_dir = base / "config"
    log_dir = base / "log"
    for path in (config_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _block_requests(monkeypatch):
    """Replace the requests entry points with a blocking callable."""
    for name in ("get", "post", "put", "delete", "head", "patch", "options"):
        monkeypatch.setattr(requests, name, _block_network)
    monkeypatch.setattr(requests.Session, "request", _block_network)


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """
    Make time.sleep instant for all tests.

    Poll loops take their sleep function as a parameter; this only guards the
    paths that fall back to the real time.sleep.
    """
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


@pytest.fixture
def make_response():
    """
    Factory for fake `requests.Response` objects.

    Usage:
        make_response(200, json_data={"ok": True}, headers={"Location": "op-1"})
    """

    def _make(status_code=200, json_data=None, content=b"", headers=None, text=""):
        response = MagicMock(spec=requests.Response)
        response.status_code = status_code
        response.ok = status_code < 400
        response.reason = "OK" if status_code < 400 else "Error"
        response.headers = dict(headers or {})
        response.content = content
        response.text = text or (json.dumps(json_data) if json_data is not None else "")
        if json_data is None:
            response.json.side_effect = ValueError("No JSON")
        else:
            response.json.return_value = json_data
        return response

    return _make


@pytest.fixture
def make_raw_response():
    """
    Factory for real `requests.Response` objects carrying an arbitrary body.

    Usage:
        make_raw_response(200, "<html>maintenance</html>")
    """

    def _make(status_code=200, body="", headers=None):
        response = requests.Response()
        response.status_code = status_code
        response.reason = "OK" if status_code < 400 else "Error"
        response.encoding = "utf-8"
        response.headers.update(headers or {})
        response._content = body.encode("utf-8")
        return response

    return _make


@pytest.fixture
def mock_session():
    """A requests.Session stand-in; program `mock_session.request` per test."""
    session = MagicMock(spec=requests.Session)
    return session


@pytest.fixture
def credentials():
    return CredentialStore(
        configured=TEST_CREDENTIALS, environ={}, secret_lookup=None
    )


@pytest.fixture
def settings():
    return PublishSettings(
        owner="acme",
        repo="blocker",
        tag="1.2.3",
        asset="chromium",
        store_id="abcdefghijklmnop",
    )


@pytest.fixture
def make_package(tmp_path):
    """
    Factory building an extension zip package.

    Parameters of the returned callable:
        manifest (dict): Manifest to store.
        files (dict): Extra archive members, name -> text.
        prefix (str): Directory the package content is nested in.
        name (str): Archive file name.
    """

    def _make(manifest, files=None, prefix="", name="ext.zip"):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(f"{prefix}manifest.json", json.dumps(manifest))
            for member, text in (files or {}).items():
                zf.writestr(f"{prefix}{member}", text)
        return path

    return _make


@pytest.fixture
def package_bytes():
    """Bytes of a minimal package named "Blocker", version 1.2.3."""

    def _make(manifest=None):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr(
                "manifest.json",
                json.dumps(manifest or {"name": "Blocker", "version": "1.2.3"}),
            )
            zf.writestr("js/background.js", "console.log('hi');")
        return buffer.getvalue()

    return _make
