# src/extpublish/cli.py

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import platformdirs

from extpublish import log_utils
from extpublish.config import (
    TARGET_CHROME,
    TARGET_EDGE,
    TARGET_FIREFOX,
    TARGET_FIREFOX_UPLOAD,
    build_settings,
    load_config,
)
from extpublish.constants import AMO_CHANNELS, CONFIG_DIR_NAME
from extpublish.context import PublishContext
from extpublish.exceptions import ExtPublishError
from extpublish.pipeline import PIPELINES


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--owner", help="GitHub repository owner")
    parser.add_argument("--repo", help="GitHub repository name")
    parser.add_argument("--tag", help="Release tag holding the package")
    parser.add_argument(
        "--asset", help="Substring identifying the package among the release assets"
    )
    parser.add_argument(
        "--store-id", dest="store_id", help="Extension id in the target store"
    )
    parser.add_argument(
        "--keep",
        action="store_true",
        default=None,
        help="Keep downloaded and generated files instead of removing them",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Log every HTTP request and executed command",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--config", type=Path, help="Configuration file to use instead of the default"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="extpublish",
        description="Publish browser extension releases from GitHub to extension stores",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    chrome_parser = subparsers.add_parser(
        TARGET_CHROME, help="Publish a release asset to the Chrome Web Store"
    )
    _add_common_arguments(chrome_parser)

    edge_parser = subparsers.add_parser(
        TARGET_EDGE, help="Publish a release asset to Microsoft Edge Add-ons"
    )
    _add_common_arguments(edge_parser)
    edge_parser.add_argument(
        "--product-id", dest="product_id", help="Edge Add-ons product id"
    )
    edge_parser.add_argument(
        "--date-based-major",
        dest="date_based_major",
        action="store_true",
        default=None,
        help="Replace the major version with a UTC date-based one",
    )
    edge_parser.add_argument(
        "--enable-publish",
        dest="enable_publish",
        action="store_true",
        default=None,
        help="Actually upload and publish the package (disabled by default)",
    )

    for name, help_text in (
        (TARGET_FIREFOX, "Submit a release asset to AMO for signing"),
        (
            TARGET_FIREFOX_UPLOAD,
            "Replace a release asset with its AMO-signed version",
        ),
    ):
        firefox_parser = subparsers.add_parser(name, help=help_text)
        _add_common_arguments(firefox_parser)
        firefox_parser.add_argument(
            "--channel", choices=AMO_CHANNELS, help="AMO distribution channel"
        )
        firefox_parser.add_argument(
            "--update-path",
            dest="update_path",
            type=Path,
            help="Auto-update descriptor (updates.json) to bring up to date",
        )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the extpublish command-line interface.

    Returns 0 when the publish run completed; any failure is logged and ends
    the process with exit status 1.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        settings = build_settings(args, config)

        log_level = args.log_level or config.get("LOG_LEVEL")
        if settings.verbose:
            log_level = "DEBUG"
        if log_level:
            log_utils.set_log_level(log_level)
        if config.get("LOG_TO_FILE"):
            log_utils.add_file_logging(
                Path(platformdirs.user_log_dir(CONFIG_DIR_NAME)),
                log_level or "INFO",
            )

        with PublishContext(settings) as ctx:
            PIPELINES[args.command](ctx)
    except ExtPublishError as e:
        log_utils.logger.error(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        log_utils.logger.error("Interrupted")
        sys.exit(1)

    return 0


if __name__ == "__main__":
    sys.exit(main())
