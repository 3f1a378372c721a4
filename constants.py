"""
Configuration for the pool schedule pipeline.

Every value can be overridden from the environment (or a local .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _get_float_env(name, default):
    try:
        return float(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _get_int_env(name, default):
    try:
        return int(os.environ.get(name, str(default)))
    except ValueError:
        return default


def _env_flag(name):
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
EXTRACTION_MODEL = os.environ.get("EXTRACTION_MODEL", "claude-sonnet-4-5-20250929")
EXTRACTION_MAX_TOKENS = _get_int_env("EXTRACTION_MAX_TOKENS", 16000)
EXTRACTION_TIMEOUT_SECONDS = _get_float_env("EXTRACTION_TIMEOUT_SECONDS", 300)
EXTRACTION_ATTEMPTS = _get_int_env("EXTRACTION_ATTEMPTS", 2)
PDF_RENDER_DPI = _get_int_env("PDF_RENDER_DPI", 200)
PDF_MAX_PAGES = _get_int_env("PDF_MAX_PAGES", 4)

PUSHOVER_USER_KEY = os.environ.get("PUSHOVER_USER_KEY", "")
PUSHOVER_API_TOKEN = os.environ.get("PUSHOVER_API_TOKEN", "")
PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"
SCHEDULES_SITE_URL = os.environ.get("SCHEDULES_SITE_URL", "https://sf-pools.vercel.app/schedules")
CHANGELOG_BROWSE_URL = os.environ.get("CHANGELOG_BROWSE_URL", "")

SFRECPARK_BASE_URL = "https://sfrecpark.org"
POOL_LIST_URL = "https://sfrecpark.org/482/Swimming-Pools"
USER_AGENT = "Mozilla/5.0 (compatible; sf-pools-schedule-viewer/0.1)"
REQUEST_TIMEOUT_SECONDS = _get_float_env("REQUEST_TIMEOUT_SECONDS", 30)
REQUEST_DELAY_SECONDS = _get_float_env("REQUEST_DELAY_SECONDS", 0.4)

TIMEZONE = "America/Los_Angeles"

# file layout
SCHEDULE_DATA_DIR = os.environ.get("SCHEDULE_DATA_DIR", "schedule_data")
POOLS_FILE = os.environ.get("POOLS_FILE", os.path.join(SCHEDULE_DATA_DIR, "pools.json"))
DISCOVERED_FILE = os.path.join(SCHEDULE_DATA_DIR, "discovered_pool_schedules.json")
PDF_DIR = os.path.join(SCHEDULE_DATA_DIR, "pdfs")
MANIFEST_FILE = os.path.join(SCHEDULE_DATA_DIR, "pdf_manifest.json")
EXTRACTION_CACHE_FILE = os.path.join(SCHEDULE_DATA_DIR, "extraction_cache.json")
ALL_SCHEDULES_FILE = os.path.join(SCHEDULE_DATA_DIR, "all_schedules.json")
CHANGELOG_DIR = os.path.join(SCHEDULE_DATA_DIR, "changelog")
ALERTS_FILE = os.path.join(SCHEDULE_DATA_DIR, "alerts.json")

# pool name matching
POOL_MATCH_THRESHOLD = _get_float_env("POOL_MATCH_THRESHOLD", 0.5)

# changelog severity
MINOR_MAX_CHANGES = _get_int_env("MINOR_MAX_CHANGES", 10)
MAJOR_MIN_CHANGES = _get_int_env("MAJOR_MIN_CHANGES", 50)
WHOLESALE_MIN_CHANGES = _get_int_env("WHOLESALE_MIN_CHANGES", 100)
MAJOR_CHANGE_PERCENT = _get_float_env("MAJOR_CHANGE_PERCENT", 0.2)
WHOLESALE_CHANGE_PERCENT = _get_float_env("WHOLESALE_CHANGE_PERCENT", 0.5)
ANOMALY_MIN_PREVIOUS_PROGRAMS = _get_int_env("ANOMALY_MIN_PREVIOUS_PROGRAMS", 10)

# run flags
FORCE_EXTRACT = _env_flag("FORCE_EXTRACT")
FORCE_DOWNLOAD = _env_flag("FORCE_DOWNLOAD")
ALLOW_LARGE_CHANGES = _env_flag("ALLOW_LARGE_CHANGES")
FAIL_ON_SEVERITY = [
    s.strip() for s in os.environ.get("FAIL_ON_SEVERITY", "major,wholesale").split(",") if s.strip()
]
