"""
Runtime configuration for the cloud header detector.

Every value can be overridden through an environment variable so the
same code runs unchanged locally and in a deployment.
"""

import os

# Probe timeout in seconds, applied to each HEAD and GET request
PROBE_TIMEOUT = float(os.environ.get("CLOUD_DETECTOR_TIMEOUT", "8"))

USER_AGENT = os.environ.get(
    "CLOUD_DETECTOR_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

# HTTP interface
SERVER_HOST = os.environ.get("CLOUD_DETECTOR_HOST", "127.0.0.1")
SERVER_PORT = int(os.environ.get("CLOUD_DETECTOR_PORT", "8080"))
DETECT_ENDPOINT = "/api/detect-cloud"

# Batch output
DEFAULT_OUTPUT_FILE = "results.csv"
