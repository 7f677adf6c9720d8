# src/extpublish/config.py
"""
Configuration loading.

Settings come from an optional YAML file in the platformdirs config location,
overridden by command line arguments.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs
import yaml

from extpublish.constants import (
    AMO_CHANNELS,
    CONFIG_DIR_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_EDGE_PUBLISH_NOTES,
    DEFAULT_UPDATE_URL_TEMPLATE,
)
from extpublish.exceptions import ConfigFileError, ConfigurationError

TARGET_CHROME = "chrome"
TARGET_EDGE = "edge"
TARGET_FIREFOX = "firefox"
TARGET_FIREFOX_UPLOAD = "firefox-upload"
TARGETS = (TARGET_CHROME, TARGET_EDGE, TARGET_FIREFOX, TARGET_FIREFOX_UPLOAD)


def get_config_file() -> Path:
    """Return the default config file path."""
    return Path(platformdirs.user_config_dir(CONFIG_DIR_NAME)) / CONFIG_FILE_NAME


def load_config(path: Optional[os.PathLike] = None) -> Dict[str, Any]:
    """
    Load the YAML configuration file.

    Parameters:
        path: Explicit config file; when omitted the platformdirs location is used
            and a missing file yields an empty configuration.

    Returns:
        Dict[str, Any]: The parsed configuration.

    Raises:
        ConfigFileError: If an explicitly given file is missing, or any file is unreadable or not a mapping.
    """
    explicit = path is not None
    config_path = Path(path) if explicit else get_config_file()
    if not config_path.exists():
        if explicit:
            raise ConfigFileError("Configuration file not found", str(config_path))
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(f"Failed to load {config_path}", str(e)) from e
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigFileError(f"Invalid configuration in {config_path}", "expected a mapping")
    return config


@dataclass
class PublishSettings:
    """Everything one publish run needs to know, credentials excepted."""

    owner: str = ""
    repo: str = ""
    tag: str = ""
    asset: str = ""
    store_id: str = ""
    product_id: str = ""
    channel: str = ""
    update_path: Optional[Path] = None
    keep: bool = False
    date_based_major: bool = False
    enable_publish: bool = False
    verbose: bool = False
    update_url_template: str = DEFAULT_UPDATE_URL_TEMPLATE
    publish_notes: str = DEFAULT_EDGE_PUBLISH_NOTES
    credentials: Dict[str, str] = field(default_factory=dict)

    def validate(self, target: str) -> None:
        """
        Check that every setting `target` needs is present.

        Raises:
            ConfigurationError: Naming every missing or invalid setting.
        """
        if target not in TARGETS:
            raise ConfigurationError(f"Unknown target: {target}")
        required = {
            "GitHub owner": self.owner,
            "GitHub repo": self.repo,
            "GitHub tag": self.tag,
            "GitHub asset name": self.asset,
            "store id": self.store_id,
        }
        if target == TARGET_EDGE:
            required["product id"] = self.product_id
        missing: List[str] = [label for label, value in required.items() if not value]
        if missing:
            raise ConfigurationError("Missing settings", details=", ".join(missing))
        if target in (TARGET_FIREFOX, TARGET_FIREFOX_UPLOAD):
            if self.channel not in AMO_CHANNELS:
                raise ConfigurationError(
                    "Need AMO channel",
                    details=f"expected one of {', '.join(AMO_CHANNELS)}, got {self.channel!r}",
                )


def build_settings(args: Any, config: Dict[str, Any]) -> PublishSettings:
    """
    Merge parsed command line arguments over the loaded configuration.

    Parameters:
        args: argparse namespace; attributes that are absent or None fall back to config.
        config (Dict[str, Any]): Loaded configuration mapping.
    """

    def _value(attr: str, key: str, default: Any = "") -> Any:
        value = getattr(args, attr, None)
        if value is None or value is False:
            value = config.get(key, default)
        return default if value is None else value

    update_path = _value("update_path", "UPDATE_PATH", None)
    credentials = config.get("CREDENTIALS") or {}
    if not isinstance(credentials, dict):
        raise ConfigFileError("Invalid CREDENTIALS section", "expected a mapping")

    return PublishSettings(
        owner=str(_value("owner", "GITHUB_OWNER")),
        repo=str(_value("repo", "GITHUB_REPO")),
        tag=str(_value("tag", "GITHUB_TAG")),
        asset=str(_value("asset", "GITHUB_ASSET")),
        store_id=str(_value("store_id", "STORE_ID")),
        product_id=str(_value("product_id", "EDGE_PRODUCT_ID")),
        channel=str(_value("channel", "AMO_CHANNEL")),
        update_path=Path(update_path) if update_path else None,
        keep=bool(_value("keep", "KEEP", False)),
        date_based_major=bool(_value("date_based_major", "DATE_BASED_MAJOR", False)),
        enable_publish=bool(_value("enable_publish", "EDGE_ENABLE_PUBLISH", False)),
        verbose=bool(_value("verbose", "VERBOSE", False)),
        update_url_template=str(
            config.get("UPDATE_URL_TEMPLATE") or DEFAULT_UPDATE_URL_TEMPLATE
        ),
        publish_notes=str(config.get("PUBLISH_NOTES") or DEFAULT_EDGE_PUBLISH_NOTES),
        credentials={str(k): str(v) for k, v in credentials.items()},
    )
