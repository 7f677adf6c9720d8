"""
Constants and configuration values for extpublish.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# GitHub API URLs
GITHUB_API_BASE = "https://api.github.com/repos"
GITHUB_RELEASE_DOWNLOAD_URL = (
    "https://github.com/{owner}/{repo}/releases/download/{tag}/{name}"
)
GITHUB_API_VERSION = "2022-11-28"

# Chrome Web Store
CWS_OAUTH_TOKEN_URL = "https://accounts.google.com/o/oauth2/token"
CWS_UPLOAD_URL = "https://www.googleapis.com/upload/chromewebstore/v1.1/items/{item_id}"
CWS_ITEM_URL = "https://www.googleapis.com/chromewebstore/v1.1/items/{item_id}"
CWS_PUBLISH_URL = (
    "https://www.googleapis.com/chromewebstore/v1.1/items/{item_id}/publish"
)
CWS_LISTING_URL = "https://chromewebstore.google.com/detail/{item_id}"

# Microsoft Edge Add-ons
EDGE_API_BASE = "https://api.addons.microsoftedge.microsoft.com/v1/products/{product_id}"
EDGE_UPLOAD_URL = f"{EDGE_API_BASE}/submissions/draft/package"
EDGE_OPERATION_URL = f"{EDGE_UPLOAD_URL}/operations/{{operation_id}}"
EDGE_PUBLISH_URL = f"{EDGE_API_BASE}/submissions"
EDGE_LISTING_URL = "https://microsoftedge.microsoft.com/addons/detail/{store_id}"
DEFAULT_EDGE_PUBLISH_NOTES = "See official release notes on the GitHub releases page"

# Mozilla AMO
AMO_SIGNING_URL = "https://addons.mozilla.org/api/v4/addons/{addon_id}/versions/{version}/"
AMO_VERSION_URL = (
    "https://addons.mozilla.org/api/v5/addons/addon/{addon_id}/versions/{version}/"
)
AMO_JWT_LIFETIME = 60  # seconds
AMO_CHANNELS = ("listed", "unlisted")
DEFAULT_UPDATE_URL_TEMPLATE = (
    "https://raw.githubusercontent.com/{owner}/{repo}/master/dist/firefox/updates.json"
)
SIGNED_XPI_SUFFIX = ".signed.xpi"

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
UPLOAD_REQUEST_TIMEOUT = 300
DEFAULT_CONNECT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.5

# Poll timing for stores which process submissions asynchronously (seconds)
EDGE_POLL_INTERVAL = 60
EDGE_POLL_TIMEOUT = 15 * 60
# AMO is checked nominally every 3 minutes for at most 30 minutes, on a 60s tick
AMO_POLL_TICK = 60
AMO_POLL_INTERVAL = 180
AMO_POLL_TIMEOUT = 30 * 60
CHROME_POLL_INTERVAL = 30
CHROME_POLL_TIMEOUT = 5 * 60

# Package handling
MANIFEST_FILE_NAME = "manifest.json"
LOCALE_MESSAGES_PATH = "_locales/{locale}/messages.json"
SCRATCH_DIR_PREFIX = "github-asset-"
ZIP_MIME_TYPE = "application/zip"
UNKNOWN_LISTING_NAME = "?"

# Auto-update descriptor
AUTO_UPDATE_COMMIT_MESSAGE = "Make Firefox dev build auto-update"

# Configuration
CONFIG_DIR_NAME = "extpublish"
CONFIG_FILE_NAME = "extpublish.yaml"
SECRET_TOOL_COMMAND = "secret-tool"

# Logging configuration
LOGGER_NAME = "extpublish"
LOG_LEVEL_ENV_VAR = "EXTPUBLISH_LOG_LEVEL"
LOG_FILE_NAME = "extpublish.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
