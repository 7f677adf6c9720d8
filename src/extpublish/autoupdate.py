"""
Self-hosted Firefox auto-update descriptor maintenance.

The descriptor is the `updates.json` file referenced by `update_url` in the
manifest of unlisted builds:

    {"addons": {"<extension id>": {"updates": [{"version": ..., "update_link": ...}]}}}

It is only ever moved forward, and every change is committed and pushed as a
single-file commit.
"""

import json
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from extpublish.constants import AUTO_UPDATE_COMMIT_MESSAGE
from extpublish.exceptions import AutoUpdateError
from extpublish.log_utils import logger
from extpublish.version import is_not_older

GitRunner = Callable[[List[str], Path], str]


def run_git(args: List[str], cwd: Path) -> str:
    """Run a git command and return its stripped standard output."""
    logger.debug(f"Executing: git {' '.join(args)}")
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        stderr = getattr(e, "stderr", None) or ""
        raise AutoUpdateError(
            f"git {args[0]} failed", details=stderr.strip() or str(e)
        ) from e
    return result.stdout.strip()


def update_auto_update_file(
    update_file_path: Path,
    extension_id: str,
    version: str,
    update_link: str,
    runner: Optional[GitRunner] = None,
) -> bool:
    """
    Record a newly signed version in the auto-update descriptor and commit it.

    The descriptor is left untouched when the new version is older than the
    recorded one, or when the index already holds staged changes that would end
    up in the commit.

    Parameters:
        update_file_path (Path): Path to `updates.json` inside a git work tree.
        extension_id (str): AMO extension id keying the `addons` mapping.
        version (str): Version of the newly signed package.
        update_link (str): Download URL of the signed package.
        runner: Git command runner, replaceable for tests.

    Returns:
        bool: True if the descriptor was updated, committed and pushed.
    """
    runner = runner or run_git
    update_file_path = Path(update_file_path).resolve()
    repo_dir = update_file_path.parent

    try:
        staged = runner(["diff", "--staged"], repo_dir)
        if staged:
            logger.warning(
                "Staged changes present, not touching the auto-update descriptor"
            )
            logger.debug(f"git diff --staged = {staged}")
            return False

        try:
            data = json.loads(update_file_path.read_text(encoding="utf-8"))
            update = data["addons"][extension_id]["updates"][0]
        except (OSError, ValueError) as e:
            logger.warning(f"Unable to read {update_file_path}: {e}")
            return False
        except (KeyError, IndexError, TypeError):
            logger.warning(f"No update entry for {extension_id} in {update_file_path}")
            return False
        if not isinstance(update, dict):
            logger.warning(f"Malformed update entry for {extension_id} in {update_file_path}")
            return False

        recorded_version = str(update.get("version", ""))
        if not is_not_older(version, recorded_version):
            logger.warning(
                f"New version older than current version: {version} < {recorded_version}"
            )
            return False

        update["version"] = version
        update["update_link"] = update_link
        update_file_path.write_text(json.dumps(data, indent=2), encoding="utf-8")

        runner(["add", "-u", str(update_file_path)], repo_dir)
        if not runner(["status", "-s", str(update_file_path)], repo_dir):
            logger.info(f"{update_file_path.name} already up to date")
            return False

        runner(
            ["commit", "-m", AUTO_UPDATE_COMMIT_MESSAGE, str(update_file_path)],
            repo_dir,
        )
        runner(["push", "origin", "HEAD"], repo_dir)
    except AutoUpdateError as e:
        logger.warning(f"Auto-update descriptor not committed: {e}")
        return False

    logger.info(f"Auto-update descriptor now points to {version}")
    return True
