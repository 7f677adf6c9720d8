"""
Per-target publishing flows.

Each flow runs the same stages in order: locate the release asset, fetch the
package, check and patch it, ask the operator for confirmation, submit it to
the store (waiting for asynchronous processing), and finally reconcile the
GitHub release with whatever the store produced.
"""

import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from extpublish.autoupdate import GitRunner, update_auto_update_file
from extpublish.config import (
    TARGET_CHROME,
    TARGET_EDGE,
    TARGET_FIREFOX,
    TARGET_FIREFOX_UPLOAD,
)
from extpublish.confirm import confirm
from extpublish.constants import (
    CWS_LISTING_URL,
    EDGE_LISTING_URL,
    SIGNED_XPI_SUFFIX,
    ZIP_MIME_TYPE,
)
from extpublish.context import PublishContext
from extpublish.exceptions import PackageError, PublishDisabledError, StoreError
from extpublish.github import GithubReleaseClient, ReleaseAsset
from extpublish.listing import extension_name_from_listing, verify_listing_name
from extpublish.log_utils import logger
from extpublish.package import (
    apply_date_based_major,
    get_extension_name,
    read_manifest,
    set_update_url,
    version_name_from_tag,
    write_manifest,
)
from extpublish.stores import amo, chrome, edge
from extpublish.stores.base import PollOutcome, StoreSubmitter
from extpublish.stores.poll import submit_and_wait, wait_for_outcome

ConfirmFunc = Callable[[List[str]], None]
SleepFunc = Callable[[float], None]

GITHUB_TOKEN = "github_token"


def github_client(ctx: PublishContext) -> GithubReleaseClient:
    s = ctx.settings
    return GithubReleaseClient(
        ctx.session, ctx.credentials.get(GITHUB_TOKEN), s.owner, s.repo, s.tag
    )


def signed_package_name(asset_name: str) -> str:
    """"ext_1.2.firefox.xpi" -> "ext_1.2.firefox.signed.xpi"."""
    if asset_name.endswith(".xpi"):
        return asset_name[: -len(".xpi")] + SIGNED_XPI_SUFFIX
    return asset_name + SIGNED_XPI_SUFFIX


def _summary(ctx: PublishContext, title: str, asset: ReleaseAsset, *extra: str) -> List[str]:
    s = ctx.settings
    return [
        title,
        f'  GitHub owner: "{s.owner}"',
        f'  GitHub repo: "{s.repo}"',
        f'  Release tag: "{s.tag}"',
        f'  Asset name: "{asset.name}"',
        *extra,
    ]


def fetch_package(
    ctx: PublishContext, github: GithubReleaseClient
) -> Tuple[ReleaseAsset, Path]:
    asset = github.locate_asset(ctx.settings.asset)
    package_path = github.download_asset(asset, ctx.scratch_dir())
    return asset, package_path


def prepare_chromium_package(
    ctx: PublishContext,
    package_path: Path,
    listing_url: str,
    date_based_major: bool = False,
) -> Tuple[Dict[str, Any], Optional[str], str]:
    """
    Check a Chromium package against its store listing and patch its manifest.

    The version name is taken from the release tag when it differs from the
    manifest version. With `date_based_major` the major version is replaced by
    a date-based one first.

    Returns:
        (manifest, manifest_name, listing_name)
    """
    listing_name = extension_name_from_listing(ctx.session, listing_url)
    manifest_name = get_extension_name(package_path)
    verify_listing_name(manifest_name, listing_name)

    manifest = read_manifest(package_path)
    update_manifest = False

    if date_based_major:
        manifest["version"] = apply_date_based_major(str(manifest.get("version", "")))
        update_manifest = True

    version_name = version_name_from_tag(ctx.settings.tag)
    if version_name != manifest.get("version"):
        manifest["version_name"] = version_name
        update_manifest = True

    if update_manifest:
        write_manifest(package_path, manifest)
    return manifest, manifest_name, listing_name


def reconcile_signed_package(
    ctx: PublishContext,
    github: GithubReleaseClient,
    unsigned_asset: ReleaseAsset,
    signed_path: Path,
    version: str,
    update_descriptor: bool,
    git_runner: Optional[GitRunner] = None,
) -> None:
    """
    Replace the unsigned release asset with the signed one.

    Must only be called once the store reported the signed package ready and it
    has been downloaded: the unsigned asset is deleted after the signed one is
    attached to the release.
    """
    s = ctx.settings
    github.upload_asset(signed_path, ZIP_MIME_TYPE)
    github.delete_asset(unsigned_asset.url)

    if update_descriptor and s.update_path:
        updated = update_auto_update_file(
            s.update_path,
            s.store_id,
            version,
            github.release_download_url(signed_path.name),
            runner=git_runner,
        )
        if not updated:
            logger.warning("Auto-update details not brought up to date")


def _download_signed(
    ctx: PublishContext,
    submitter: StoreSubmitter,
    outcome: PollOutcome,
    asset: ReleaseAsset,
) -> Path:
    if not outcome.locator:
        raise StoreError("No signed package to download", submitter.name)
    signed_path = ctx.scratch_dir() / signed_package_name(asset.name)
    return submitter.download_artifact(outcome.locator, signed_path)


def _manifest_version(manifest: Dict[str, Any], package_path: Path) -> str:
    version = manifest.get("version")
    if not version:
        raise PackageError("Manifest has no version", package_path=str(package_path))
    return str(version)


def publish_chrome(
    ctx: PublishContext,
    confirm_func: ConfirmFunc = confirm,
    sleep: SleepFunc = time.sleep,
) -> None:
    """Publish a release asset to the Chrome Web Store."""
    s = ctx.settings
    s.validate(TARGET_CHROME)
    ctx.credentials.require(GITHUB_TOKEN, *chrome.REQUIRED_CREDENTIALS)

    github = github_client(ctx)
    asset, package_path = fetch_package(ctx, github)
    manifest, manifest_name, listing_name = prepare_chromium_package(
        ctx, package_path, CWS_LISTING_URL.format(item_id=s.store_id)
    )

    confirm_func(
        _summary(
            ctx,
            "Publish to Chrome store:",
            asset,
            f'  Extension names: "{manifest_name}" / "{listing_name}"',
            f"  Extension id: {s.store_id}",
            f"  Extension version: {manifest.get('version')}",
            f"  Extension version name: {manifest.get('version_name') or '[empty]'}",
        )
    )

    submitter = chrome.ChromeWebStoreSubmitter(ctx.session, ctx.credentials, s.store_id)
    submit_and_wait(submitter, package_path, sleep=sleep)
    submitter.publish()
    logger.info("Done")


def publish_edge(
    ctx: PublishContext,
    confirm_func: ConfirmFunc = confirm,
    sleep: SleepFunc = time.sleep,
) -> None:
    """
    Publish a release asset to Microsoft Edge Add-ons.

    Uploading stays disabled unless `enable_publish` is set: the run stops with
    PublishDisabledError right after the confirmation.
    """
    s = ctx.settings
    s.validate(TARGET_EDGE)
    required = [GITHUB_TOKEN]
    if s.enable_publish:
        required.extend(edge.REQUIRED_CREDENTIALS)
    ctx.credentials.require(*required)

    github = github_client(ctx)
    asset, package_path = fetch_package(ctx, github)
    manifest, manifest_name, listing_name = prepare_chromium_package(
        ctx,
        package_path,
        EDGE_LISTING_URL.format(store_id=s.store_id),
        date_based_major=s.date_based_major,
    )

    confirm_func(
        _summary(
            ctx,
            "Publish to Edge store:",
            asset,
            f'  Extension names: "{manifest_name}" / "{listing_name}"',
            f"  Extension id: {s.store_id}",
            f"  Extension version: {manifest.get('version')}",
            f"  Extension version name: {manifest.get('version_name') or '[empty]'}",
            f"  Product id: {s.product_id}",
        )
    )

    if not s.enable_publish:
        raise PublishDisabledError(
            "Publishing to Edge Add-ons is disabled",
            details="pass --enable-publish to upload the package",
        )

    submitter = edge.EdgeAddonsSubmitter(
        ctx.session, ctx.credentials, s.product_id, s.publish_notes
    )
    submit_and_wait(submitter, package_path, sleep=sleep)
    submitter.publish()
    logger.info("Done")


def publish_firefox(
    ctx: PublishContext,
    confirm_func: ConfirmFunc = confirm,
    sleep: SleepFunc = time.sleep,
    git_runner: Optional[GitRunner] = None,
) -> None:
    """
    Submit a release asset to AMO for signing.

    Unlisted (self-hosted) packages get an `update_url` injected before
    submission, and once signed replace the unsigned asset on GitHub.
    """
    s = ctx.settings
    s.validate(TARGET_FIREFOX)
    ctx.credentials.require(GITHUB_TOKEN, *amo.REQUIRED_CREDENTIALS)
    unlisted = s.channel == amo.CHANNEL_UNLISTED

    github = github_client(ctx)
    asset = github.locate_asset(s.asset)

    confirm_func(
        _summary(
            ctx,
            "Publish to AMO store:",
            asset,
            f"  Extension id: {s.store_id}",
            f"  channel: {s.channel}",
        )
    )

    package_path = github.download_asset(asset, ctx.scratch_dir())
    manifest = read_manifest(package_path)
    version = _manifest_version(manifest, package_path)

    if unlisted:
        update_url = s.update_url_template.format(owner=s.owner, repo=s.repo)
        write_manifest(package_path, set_update_url(manifest, update_url))

    submitter = amo.AmoSubmitter(
        ctx.session, ctx.credentials, s.store_id, version, s.channel
    )
    outcome = submit_and_wait(submitter, package_path, sleep=sleep)
    if not unlisted:
        logger.info("Done")
        return

    logger.info("Self-hosted package successfully signed")
    signed_path = _download_signed(ctx, submitter, outcome, asset)
    reconcile_signed_package(
        ctx, github, asset, signed_path, version, True, git_runner=git_runner
    )
    logger.info("Done")


def upload_firefox(
    ctx: PublishContext,
    confirm_func: ConfirmFunc = confirm,
    sleep: SleepFunc = time.sleep,
    git_runner: Optional[GitRunner] = None,
) -> None:
    """
    Fetch the AMO-signed build of an already submitted version and attach it
    to the GitHub release in place of the unsigned one.
    """
    s = ctx.settings
    s.validate(TARGET_FIREFOX_UPLOAD)
    ctx.credentials.require(GITHUB_TOKEN, *amo.REQUIRED_CREDENTIALS)

    github = github_client(ctx)
    asset = github.locate_asset(s.asset)

    confirm_func(
        _summary(
            ctx,
            "Upload to GitHub:",
            asset,
            f"  Extension id: {s.store_id}",
            f"  channel: {s.channel}",
        )
    )

    package_path = github.download_asset(asset, ctx.scratch_dir())
    manifest = read_manifest(package_path)
    version = _manifest_version(manifest, package_path)

    submitter = amo.AmoSubmitter(
        ctx.session,
        ctx.credentials,
        s.store_id,
        version,
        s.channel,
        budget=amo.AMO_SIGNED_CHECK_BUDGET,
    )
    outcome = wait_for_outcome(submitter, submitter.signed_version_handle(), sleep=sleep)
    logger.info("Package successfully signed")

    signed_path = _download_signed(ctx, submitter, outcome, asset)
    reconcile_signed_package(
        ctx,
        github,
        asset,
        signed_path,
        version,
        s.channel == amo.CHANNEL_UNLISTED,
        git_runner=git_runner,
    )
    logger.info("Done")


PIPELINES: Dict[str, Callable[..., None]] = {
    TARGET_CHROME: publish_chrome,
    TARGET_EDGE: publish_edge,
    TARGET_FIREFOX: publish_firefox,
    TARGET_FIREFOX_UPLOAD: upload_firefox,
}
