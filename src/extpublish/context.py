"""
Per-run publishing context.

A PublishContext owns everything a publish run acquires: settings, credentials,
the HTTP session and scratch directories. Resources register a cleanup action
when they are created; the actions run once, newest first, when the context
exits, whatever the exit path.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import requests

from extpublish.config import PublishSettings
from extpublish.constants import SCRATCH_DIR_PREFIX
from extpublish.credentials import CredentialStore
from extpublish.log_utils import logger
from extpublish.utils import build_session


def _remove_dir(path: Path) -> None:
    logger.info(f"Removing {path}")
    shutil.rmtree(path)


class PublishContext:
    """Explicit state for one publish run; use as a context manager."""

    def __init__(
        self,
        settings: PublishSettings,
        credentials: Optional[CredentialStore] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings
        self.credentials = credentials or CredentialStore(settings.credentials)
        self._cleanup_jobs: List[Tuple[str, Callable[[], None]]] = []
        self._closed = False
        self.session = session or build_session()
        self.add_cleanup(self.session.close, "close HTTP session")

    def add_cleanup(self, fn: Callable[[], None], description: str = "") -> None:
        """Register an action to run when the context is closed."""
        self._cleanup_jobs.append((description or repr(fn), fn))

    def scratch_dir(self) -> Path:
        """
        Create a fresh scratch directory for this run.

        The directory is removed when the context closes, unless the run was
        asked to keep its files.
        """
        path = Path(tempfile.mkdtemp(prefix=SCRATCH_DIR_PREFIX))
        if self.settings.keep:
            logger.info(f"Scratch files will be kept in {path}")
        else:
            self.add_cleanup(lambda: _remove_dir(path), f"remove {path}")
        return path

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Run every registered cleanup action exactly once."""
        if self._closed:
            return
        self._closed = True
        while self._cleanup_jobs:
            description, fn = self._cleanup_jobs.pop()
            try:
                fn()
            except Exception as e:
                logger.warning(f"Cleanup step '{description}' failed: {e}")

    def __enter__(self) -> "PublishContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False
