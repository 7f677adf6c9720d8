"""
Credential lookup.

Credentials are looked up, in order, in the environment, in the `CREDENTIALS`
mapping of the config file, and in the desktop keyring through `secret-tool`
(store one with `secret-tool store --label=... token <name>`).
"""

import os
import subprocess
from typing import Callable, Dict, List, Mapping, Optional

from extpublish.constants import SECRET_TOOL_COMMAND
from extpublish.exceptions import ConfigurationError
from extpublish.log_utils import logger

# Older environment variable names still honoured
ENV_ALIASES: Dict[str, str] = {
    "cws_client_id": "CWS_ID",
    "cws_client_secret": "CWS_SECRET",
    "cws_refresh_token": "CWS_REFRESH",
}

SecretLookup = Callable[[str], Optional[str]]


def secret_tool_lookup(name: str) -> Optional[str]:
    """Look a token up in the desktop keyring; None when unavailable."""
    try:
        result = subprocess.run(
            [SECRET_TOOL_COMMAND, "lookup", "token", name],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug(f"{SECRET_TOOL_COMMAND} unavailable: {e}")
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


class CredentialStore:
    """
    Resolves and caches named credentials for the duration of one run.
    """

    def __init__(
        self,
        configured: Optional[Mapping[str, str]] = None,
        environ: Optional[Mapping[str, str]] = None,
        secret_lookup: Optional[SecretLookup] = secret_tool_lookup,
    ) -> None:
        self._configured = dict(configured or {})
        self._environ = os.environ if environ is None else environ
        self._secret_lookup = secret_lookup
        self._cache: Dict[str, Optional[str]] = {}

    def _resolve(self, name: str) -> Optional[str]:
        for env_name in (name.upper(), ENV_ALIASES.get(name)):
            if env_name and self._environ.get(env_name, "").strip():
                logger.debug(f"Credential {name} taken from ${env_name}")
                return self._environ[env_name].strip()
        value = self._configured.get(name)
        if value:
            logger.debug(f"Credential {name} taken from config file")
            return str(value).strip()
        if self._secret_lookup is not None:
            value = self._secret_lookup(name)
            if value:
                logger.debug(f"Credential {name} taken from keyring")
                return value
        return None

    def get(self, name: str) -> Optional[str]:
        if name not in self._cache:
            self._cache[name] = self._resolve(name)
        return self._cache[name]

    def require(self, *names: str) -> Dict[str, str]:
        """
        Resolve every credential in `names`.

        Raises:
            ConfigurationError: Listing every credential that could not be found.
        """
        values = {name: self.get(name) for name in names}
        missing: List[str] = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigurationError(
                "Missing credentials",
                details=", ".join(missing),
            )
        return {name: value for name, value in values.items() if value}

    def __getitem__(self, name: str) -> str:
        return self.require(name)[name]
