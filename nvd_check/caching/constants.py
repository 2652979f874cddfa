"""
@file constants.py
@brief Shared constants and environment-driven defaults

@details
Values that are not part of a project's configuration document but are
needed across modules: store file name, report defaults, exit codes and
NVD API access parameters.
"""

import os

# Local vulnerability store, one file per data directory
DB_FILENAME = "nvdcve.db"

# Default data directory is <home>/.lein/.nvd
DATA_DIRECTORY_PARTS = (".lein", ".nvd")

DEFAULT_OUTPUT_DIR = "target/nvd"
DEFAULT_OUTPUT_FORMAT = "ALL"
REPORT_BASENAME = "dependency-check-report"

# Only packaged Java artifacts are registered for scanning
ARTIFACT_EXTENSIONS = (".jar",)

# Process exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VULNERABILITIES_FOUND = 255

# NVD API (nvdlib)
NVD_API_KEY = os.environ.get("NVD_API_KEY")
# 50 requests / 30s with a key, 5 requests / 30s without
API_REQUEST_DELAY = 0.6 if NVD_API_KEY else 6
# NVD rejects lastMod ranges longer than 120 days
MAX_UPDATE_WINDOW_DAYS = 120

LOG_DIR = os.environ.get("NVD_CHECK_LOG_DIR", "logs")
