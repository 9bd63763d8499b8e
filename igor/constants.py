"""Igor constants."""

from __future__ import annotations

# GitLab API
DEFAULT_GITLAB_HOST = "https://gitlab.com"
API_PREFIX = "api/v4"
TOKEN_HEADER = "PRIVATE-TOKEN"
HTTP_TIMEOUT_S = 10

# Aggregation
RUNNERS_PAGE_SIZE = 100
ENRICH_WORKERS = 10

# Views
MANAGER_ONLINE_STATUS = "online"
UNCONTACTED_THRESHOLD_S = 3600

# Polling defaults (overridable from config.toml)
DEFAULT_POLL_INTERVAL_S = 30
DEFAULT_POLL_TIMEOUT_S = 1800

# Dashboard event loop
TICK_INTERVAL_MS = 250

# Local files
IGOR_DIR_NAME = ".igor"
LOG_DIR_NAME = "logs"
LOG_FILE_NAME = "igor.log"
LOG_BACKUP_DAYS = 7
CONFIG_FILE_NAME = "config.toml"
CONFIG_APP_DIR_NAME = "igor"

RUNNER_TYPES = ("instance_type", "group_type", "project_type")
RUNNER_STATUSES = ("online", "offline", "stale", "never_contacted")
