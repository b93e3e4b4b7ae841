"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(
    os.environ.get("BILLING_DB_PATH", str(PROJECT_ROOT / "data" / "db" / "tutor-billing.db"))
)

# =============================================================================
# LINE MESSAGING CONFIGURATION
# =============================================================================

LINE_ACCESS_TOKEN = os.environ.get("LINE_ACCESS_TOKEN", "")
LINE_API_BASE = os.environ.get("LINE_API_BASE", "https://api.line.me/v2/bot/message")
LINE_MAX_MESSAGES_PER_REQUEST = 5  # LINE rejects reply/push bodies with more

# =============================================================================
# REGISTRATION DEFAULTS
# =============================================================================

# New teachers are registered against these sources
DEFAULT_ICAL_URL = os.environ.get("DEFAULT_ICAL_URL", "")
DEFAULT_CSV_URL = os.environ.get("DEFAULT_CSV_URL", "")
TEACHER_EMAIL_EXCLUDE = os.environ.get("TEACHER_EMAIL_EXCLUDE", "").strip().lower()

# =============================================================================
# BILLING CONFIGURATION
# =============================================================================

BILLING_UTC_OFFSET_HOURS = 8  # Asia/Taipei, no DST
HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "20"))

# =============================================================================
# API CONFIGURATION
# =============================================================================

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
API_VERSION = "1.0.0"
