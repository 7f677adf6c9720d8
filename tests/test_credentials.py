import subprocess
from unittest.mock import patch

import pytest

from extpublish.credentials import CredentialStore, secret_tool_lookup
from extpublish.exceptions import ConfigurationError

pytestmark = [pytest.mark.unit, pytest.mark.configuration]


class TestCredentialStore:
    def test_environment_wins_over_config(self):
        store = CredentialStore(
            configured={"amo_secret": "from-config"},
            environ={"AMO_SECRET": "from-env"},
            secret_lookup=None,
        )

        assert store.get("amo_secret") == "from-env"

    def test_legacy_environment_alias(self):
        store = CredentialStore(environ={"CWS_REFRESH": " refresh "}, secret_lookup=None)

        assert store.get("cws_refresh_token") == "refresh"

    def test_blank_environment_value_is_ignored(self):
        store = CredentialStore(
            configured={"github_token": "cfg"},
            environ={"GITHUB_TOKEN": "  "},
            secret_lookup=None,
        )

        assert store.get("github_token") == "cfg"

    def test_keyring_is_last(self):
        lookups = []

        def lookup(name):
            lookups.append(name)
            return "from-keyring"

        store = CredentialStore(
            configured={"amo_api_key": "cfg"}, environ={}, secret_lookup=lookup
        )

        assert store.get("amo_api_key") == "cfg"
        assert store.get("amo_secret") == "from-keyring"
        assert lookups == ["amo_secret"]

    def test_values_are_cached(self):
        lookups = []

        def lookup(name):
            lookups.append(name)
            return None

        store = CredentialStore(environ={}, secret_lookup=lookup)

        assert store.get("edge_api_key") is None
        assert store.get("edge_api_key") is None
        assert lookups == ["edge_api_key"]

    def test_require_lists_every_missing_name(self):
        store = CredentialStore(
            configured={"edge_api_key": "k"}, environ={}, secret_lookup=None
        )

        with pytest.raises(ConfigurationError) as exc_info:
            store.require("edge_api_key", "edge_client_id", "github_token")

        assert exc_info.value.details == "edge_client_id, github_token"

    def test_require_returns_values(self, credentials):
        assert credentials.require("amo_api_key", "amo_secret") == {
            "amo_api_key": "user:12345:67",
            "amo_secret": "amo-secret",
        }

    def test_getitem(self, credentials):
        assert credentials["github_token"] == "gh-token"


class TestSecretToolLookup:
    def test_found(self):
        completed = subprocess.CompletedProcess([], 0, stdout="s3cret\n", stderr="")
        with patch(
            "extpublish.credentials.subprocess.run", return_value=completed
        ) as run:
            assert secret_tool_lookup("amo_secret") == "s3cret"

        assert run.call_args[0][0] == ["secret-tool", "lookup", "token", "amo_secret"]

    def test_not_found(self):
        completed = subprocess.CompletedProcess([], 1, stdout="", stderr="")
        with patch("extpublish.credentials.subprocess.run", return_value=completed):
            assert secret_tool_lookup("amo_secret") is None

    def test_tool_missing(self):
        with patch(
            "extpublish.credentials.subprocess.run",
            side_effect=FileNotFoundError("secret-tool"),
        ):
            assert secret_tool_lookup("amo_secret") is None
