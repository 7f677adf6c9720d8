import json
import subprocess
from unittest.mock import patch

import pytest

from extpublish.constants import AUTO_UPDATE_COMMIT_MESSAGE
from extpublish.exceptions import AutoUpdateError
from extpublish.autoupdate import run_git, update_auto_update_file

pytestmark = pytest.mark.unit

EXTENSION_ID = "blocker@acme.org"
LINK = "https://github.com/acme/blocker/releases/download/1.3.0/blocker.signed.xpi"


class FakeGit:
    """Records git invocations; answers from a per-subcommand table."""

    def __init__(self, staged="", status=" M updates.json", fail_on=None):
        self.calls = []
        self.answers = {"diff": staged, "status": status}
        self.fail_on = fail_on

    def __call__(self, args, cwd):
        self.calls.append((args, cwd))
        if args[0] == self.fail_on:
            raise AutoUpdateError(f"git {args[0]} failed")
        return self.answers.get(args[0], "")

    @property
    def commands(self):
        return [args[0] for args, _ in self.calls]


@pytest.fixture
def updates_file(tmp_path):
    path = tmp_path / "updates.json"
    data = {
        "addons": {
            EXTENSION_ID: {
                "updates": [{"version": "1.2.0", "update_link": "https://old/link"}]
            }
        }
    }
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


class TestUpdateAutoUpdateFile:
    def test_newer_version_is_committed_and_pushed(self, updates_file):
        git = FakeGit()

        assert update_auto_update_file(updates_file, EXTENSION_ID, "1.3.0", LINK, git)

        entry = json.loads(updates_file.read_text())["addons"][EXTENSION_ID]["updates"][0]
        assert entry == {"version": "1.3.0", "update_link": LINK}
        assert git.commands == ["diff", "add", "status", "commit", "push"]
        commit_args = git.calls[3][0]
        assert commit_args[:3] == ["commit", "-m", AUTO_UPDATE_COMMIT_MESSAGE]
        assert git.calls[4][0] == ["push", "origin", "HEAD"]
        assert all(cwd == updates_file.resolve().parent for _, cwd in git.calls)

    def test_older_version_leaves_file_untouched(self, updates_file):
        before = updates_file.read_bytes()
        git = FakeGit()

        assert not update_auto_update_file(
            updates_file, EXTENSION_ID, "1.1.9", LINK, git
        )

        assert updates_file.read_bytes() == before
        assert git.commands == ["diff"]

    def test_same_version_is_accepted(self, updates_file):
        assert update_auto_update_file(
            updates_file, EXTENSION_ID, "1.2.0", LINK, FakeGit()
        )

    def test_staged_changes_abort(self, updates_file):
        before = updates_file.read_bytes()
        git = FakeGit(staged="diff --git a/other b/other")

        assert not update_auto_update_file(
            updates_file, EXTENSION_ID, "1.3.0", LINK, git
        )

        assert updates_file.read_bytes() == before
        assert git.commands == ["diff"]

    def test_nothing_to_commit(self, updates_file):
        git = FakeGit(status="")

        assert not update_auto_update_file(
            updates_file, EXTENSION_ID, "1.3.0", LINK, git
        )

        assert "commit" not in git.commands

    def test_unknown_extension(self, updates_file):
        git = FakeGit()

        assert not update_auto_update_file(updates_file, "other@id", "1.3.0", LINK, git)

        assert git.commands == ["diff"]

    def test_malformed_update_entry(self, tmp_path):
        path = tmp_path / "updates.json"
        path.write_text(
            json.dumps({"addons": {EXTENSION_ID: {"updates": ["1.2.0"]}}}),
            encoding="utf-8",
        )
        before = path.read_bytes()
        git = FakeGit()

        assert not update_auto_update_file(path, EXTENSION_ID, "1.3.0", LINK, git)

        assert path.read_bytes() == before
        assert git.commands == ["diff"]

    def test_missing_file(self, tmp_path):
        assert not update_auto_update_file(
            tmp_path / "missing.json", EXTENSION_ID, "1.3.0", LINK, FakeGit()
        )

    def test_push_failure_is_reported_not_raised(self, updates_file):
        git = FakeGit(fail_on="push")

        assert not update_auto_update_file(
            updates_file, EXTENSION_ID, "1.3.0", LINK, git
        )


class TestRunGit:
    def test_returns_stripped_stdout(self, tmp_path):
        completed = subprocess.CompletedProcess(["git"], 0, stdout=" M x\n", stderr="")
        with patch("extpublish.autoupdate.subprocess.run", return_value=completed) as run:
            assert run_git(["status", "-s"], tmp_path) == "M x"

        assert run.call_args[0][0] == ["git", "status", "-s"]
        assert run.call_args[1]["cwd"] == tmp_path

    def test_failure_raises_auto_update_error(self, tmp_path):
        error = subprocess.CalledProcessError(1, ["git", "push"], stderr="rejected\n")
        with patch("extpublish.autoupdate.subprocess.run", side_effect=error):
            with pytest.raises(AutoUpdateError) as exc_info:
                run_git(["push", "origin", "HEAD"], tmp_path)

        assert exc_info.value.details == "rejected"

    def test_missing_git(self, tmp_path):
        with patch(
            "extpublish.autoupdate.subprocess.run", side_effect=FileNotFoundError("git")
        ):
            with pytest.raises(AutoUpdateError):
                run_git(["status"], tmp_path)
