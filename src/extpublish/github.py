"""
GitHub release access.

This module locates, downloads, uploads and deletes assets of one tagged
release of one repository.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from extpublish.constants import (
    GITHUB_API_BASE,
    GITHUB_API_VERSION,
    GITHUB_RELEASE_DOWNLOAD_URL,
    UPLOAD_REQUEST_TIMEOUT,
)
from extpublish.exceptions import ConfigurationError, HTTPError, ReleaseError
from extpublish.log_utils import logger
from extpublish.utils import send_request


@dataclass
class ReleaseAsset:
    """Represents an asset attached to a GitHub release."""

    name: str
    """The filename of the asset"""

    url: str
    """API URL of the asset, used for downloading and deleting it"""

    size: int = 0
    """File size in bytes"""

    browser_download_url: Optional[str] = None
    """Public download URL"""

    content_type: Optional[str] = None
    """MIME type of the asset"""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ReleaseAsset":
        return cls(
            name=data["name"],
            url=data["url"],
            size=int(data.get("size") or 0),
            browser_download_url=data.get("browser_download_url"),
            content_type=data.get("content_type"),
        )


class GithubReleaseClient:
    """
    Client for the assets of a single tagged release.

    Usage:
        client = GithubReleaseClient(session, token, "owner", "repo", "1.2.3")
        asset = client.locate_asset("chromium")
        path = client.download_asset(asset, scratch_dir)
    """

    def __init__(
        self,
        session: requests.Session,
        token: Optional[str],
        owner: str,
        repo: str,
        tag: str,
    ) -> None:
        self.session = session
        self.token = token
        self.owner = owner
        self.repo = repo
        self.tag = tag

    @property
    def release_label(self) -> str:
        return f"{self.owner}/{self.repo}/{self.tag}"

    def _headers(self, **extra: str) -> Dict[str, str]:
        if not self.token:
            raise ConfigurationError("Need GitHub token")
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "Authorization": f"Bearer {self.token}",
        }
        headers.update(extra)
        return headers

    def _get_json(self, url: str, what: str) -> Dict[str, Any]:
        response = send_request(self.session, "GET", url, headers=self._headers())
        if not response.ok:
            raise ReleaseError(
                f"Unable to fetch {what}",
                details=f"server error {response.status_code} {response.reason}",
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ReleaseError(f"Invalid {what} received from GitHub", str(e)) from e
        if not isinstance(data, dict):
            raise ReleaseError(f"Invalid {what} received from GitHub")
        return data

    def get_release_info(self) -> Dict[str, Any]:
        """Fetch the release matching the configured tag."""
        logger.info(f"Fetching release info for {self.release_label} from GitHub")
        url = f"{GITHUB_API_BASE}/{self.owner}/{self.repo}/releases/tags/{self.tag}"
        return self._get_json(url, "release info")

    def get_latest_release_info(self) -> Dict[str, Any]:
        """Fetch the latest published release of the repository."""
        logger.info(f"Fetching latest release info for {self.owner}/{self.repo} from GitHub")
        url = f"{GITHUB_API_BASE}/{self.owner}/{self.repo}/releases/latest"
        return self._get_json(url, "latest release info")

    def locate_asset(self, name_pattern: str) -> ReleaseAsset:
        """
        Find the first release asset whose name contains `name_pattern`.

        Raises:
            ReleaseError: If the release has no matching asset.
        """
        release_info = self.get_release_info()
        assets = release_info.get("assets")
        if not isinstance(assets, list):
            raise ReleaseError(f"Release {self.release_label} has no assets")
        for asset_data in assets:
            if not isinstance(asset_data, dict):
                continue
            if name_pattern in str(asset_data.get("name", "")):
                try:
                    return ReleaseAsset.from_api(asset_data)
                except (KeyError, TypeError, ValueError) as e:
                    raise ReleaseError("Malformed asset entry", details=str(e)) from e
        raise ReleaseError(
            f"No asset matching '{name_pattern}' in release {self.release_label}"
        )

    def fetch_asset_bytes(self, asset: ReleaseAsset) -> bytes:
        logger.info(f"Fetching {asset.url}")
        response = send_request(
            self.session,
            "GET",
            asset.url,
            headers=self._headers(Accept="application/octet-stream"),
        )
        if not response.ok:
            raise HTTPError(
                f"Download of {asset.name} failed",
                status_code=response.status_code,
                url=asset.url,
                details=f"server error {response.status_code}",
            )
        return response.content

    def download_asset(self, asset: ReleaseAsset, dest_dir: Path) -> Path:
        """Download an asset into `dest_dir` and return the file path."""
        data = self.fetch_asset_bytes(asset)
        file_path = Path(dest_dir) / asset.name
        file_path.write_bytes(data)
        logger.info(f"Asset saved at {file_path}")
        return file_path

    def upload_asset(self, asset_path: Path, mime_type: str) -> ReleaseAsset:
        """
        Attach a local file to the release.

        Raises:
            ReleaseError: If the file cannot be read or GitHub refuses the upload.
        """
        asset_path = Path(asset_path)
        logger.info(f'Uploading "{asset_path}" to GitHub...')
        try:
            data = asset_path.read_bytes()
        except OSError as e:
            raise ReleaseError(f"Unable to read {asset_path}", str(e)) from e
        upload_url_template = self.get_release_info().get("upload_url")
        if not upload_url_template:
            raise ReleaseError(f"Release {self.release_label} has no upload URL")
        upload_url = upload_url_template.split("{", 1)[0]
        logger.debug(f"Upload URL: {upload_url}")
        response = send_request(
            self.session,
            "POST",
            upload_url,
            params={"name": asset_path.name},
            data=data,
            headers=self._headers(**{"Content-Type": mime_type}),
            timeout=UPLOAD_REQUEST_TIMEOUT,
        )
        if response.status_code != 201:
            raise ReleaseError(
                f"Failed to upload {asset_path.name} to {self.release_label}",
                details=f"server error {response.status_code}",
            )
        return ReleaseAsset.from_api(response.json())

    def delete_asset(self, asset_url: str) -> bool:
        """Remove an asset from the release. Returns True on success."""
        logger.info(f"Remove {asset_url} from GitHub release {self.tag}...")
        response = send_request(
            self.session, "DELETE", asset_url, headers=self._headers()
        )
        if not response.ok:
            logger.error(
                f"Deletion of {asset_url} failed -- server error {response.status_code}"
            )
            return False
        return True

    def release_download_url(self, asset_name: str) -> str:
        """Public download URL of an asset of this release."""
        return GITHUB_RELEASE_DOWNLOAD_URL.format(
            owner=self.owner, repo=self.repo, tag=self.tag, name=asset_name
        )
