"""
Extension package inspection and patching.

Packages are zip archives (.zip, .xpi, .crx-less zips) carrying a
`manifest.json`, possibly nested one directory deep.
"""

import json
import os
import re
import shutil
import tempfile
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from extpublish.constants import LOCALE_MESSAGES_PATH, MANIFEST_FILE_NAME
from extpublish.exceptions import PackageError
from extpublish.log_utils import logger

_MSG_NAME_RX = re.compile(r"^__MSG_(\w+)__$")
_LEADING_NON_DIGITS_RX = re.compile(r"^\D+")
_LEADING_DIGITS_RX = re.compile(r"^\d+")


def _find_member(zf: zipfile.ZipFile, needle: str) -> Optional[str]:
    """Return the first archive member whose path contains `needle`."""
    for name in zf.namelist():
        if needle in name and not name.endswith("/"):
            return name
    return None


def read_file_from_package(package_path: os.PathLike, needle: str) -> Optional[str]:
    """
    Read a text file out of a package.

    Parameters:
        package_path: Path to the package archive.
        needle: Substring of the member path to look for (e.g. "manifest.json").

    Returns:
        Optional[str]: The decoded file contents, or None if no member matches.

    Raises:
        PackageError: If the archive cannot be opened.
    """
    try:
        with zipfile.ZipFile(package_path) as zf:
            member = _find_member(zf, needle)
            if member is None:
                return None
            return zf.read(member).decode("utf-8-sig")
    except (zipfile.BadZipFile, OSError) as e:
        raise PackageError(
            "Unable to read package", package_path=str(package_path), details=str(e)
        ) from e


def read_manifest(package_path: os.PathLike) -> Dict[str, Any]:
    """
    Load the extension manifest from a package.

    Raises:
        PackageError: If the package has no manifest or it is not valid JSON.
    """
    text = read_file_from_package(package_path, MANIFEST_FILE_NAME)
    if text is None:
        raise PackageError(
            "Unable to find manifest file", package_path=str(package_path)
        )
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise PackageError(
            "Invalid manifest file", package_path=str(package_path), details=str(e)
        ) from e


def write_manifest(package_path: os.PathLike, manifest: Dict[str, Any]) -> None:
    """
    Replace the manifest inside a package.

    The archive is rebuilt next to the original with every other member copied
    unchanged, then moved over the original.

    Raises:
        PackageError: If the package has no manifest or cannot be rewritten.
    """
    package_path = Path(package_path)
    fd, temp_path = tempfile.mkstemp(
        prefix=f"{package_path.name}.", suffix=".tmp", dir=package_path.parent
    )
    os.close(fd)
    try:
        with zipfile.ZipFile(package_path) as src:
            manifest_member = _find_member(src, MANIFEST_FILE_NAME)
            if manifest_member is None:
                raise PackageError(
                    "Unable to find manifest file", package_path=str(package_path)
                )
            with zipfile.ZipFile(temp_path, "w", zipfile.ZIP_DEFLATED) as dst:
                for info in src.infolist():
                    if info.filename == manifest_member:
                        dst.writestr(info, json.dumps(manifest, indent=2))
                    else:
                        dst.writestr(info, src.read(info))
        shutil.move(temp_path, package_path)
    except (zipfile.BadZipFile, OSError) as e:
        raise PackageError(
            "Unable to update manifest file",
            package_path=str(package_path),
            details=str(e),
        ) from e
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)
    logger.debug(f"Updated {manifest_member} in {package_path}")


def get_extension_name(package_path: os.PathLike) -> Optional[str]:
    """
    Return the human readable extension name of a package.

    Localized names (`__MSG_key__`) are resolved through the messages file of the
    manifest's `default_locale`. Returns None when the name cannot be resolved.
    """
    manifest = read_manifest(package_path)
    name = manifest.get("name")
    if not isinstance(name, str):
        return None
    match = _MSG_NAME_RX.match(name)
    if match is None:
        return name

    locale = manifest.get("default_locale")
    if not locale:
        return None
    text = read_file_from_package(
        package_path, LOCALE_MESSAGES_PATH.format(locale=locale)
    )
    if text is None:
        return None
    try:
        messages = json.loads(text)
    except json.JSONDecodeError:
        logger.warning(f"Invalid messages file for locale {locale}")
        return None
    # Message keys are case-insensitive
    key = match.group(1).lower()
    for message_key, entry in messages.items():
        if message_key.lower() == key and isinstance(entry, dict):
            return entry.get("message")
    return None


def version_name_from_tag(tag: str) -> str:
    """Strip the leading non-digit prefix of a release tag ("v1.2.3" -> "1.2.3")."""
    return _LEADING_NON_DIGITS_RX.sub("", tag)


def apply_date_based_major(version: str, now: Optional[datetime] = None) -> str:
    """
    Replace the major component of `version` with a UTC date-based one.

    The new major is `<year>.<month * 100 + day>`, e.g. "1.65.0" published on
    2025-03-07 becomes "2025.307.65.0".
    """
    now = now or datetime.now(timezone.utc)
    major = f"{now.year}.{now.month * 100 + now.day}"
    return _LEADING_DIGITS_RX.sub(major, version, count=1)


def set_update_url(manifest: Dict[str, Any], update_url: str) -> Dict[str, Any]:
    """Point a Firefox manifest at a self-hosted auto-update descriptor."""
    settings = manifest.setdefault("browser_specific_settings", {})
    gecko = settings.setdefault("gecko", {})
    gecko["update_url"] = update_url
    return manifest
