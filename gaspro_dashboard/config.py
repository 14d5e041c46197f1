"""
Configuration: field catalogue, import cell map, constants, environment settings.

FIELD_CELL_MAP maps each imported gas field to the three cells of the daily
report workbook that hold its gas, condensate and water volumes.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Paths and environment
# ---------------------------------------------------------------------------
PROJECT_DIR = Path(__file__).resolve().parent.parent

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

CACHE_DIR = Path(os.getenv("GASPRO_CACHE_DIR", str(PROJECT_DIR / ".gaspro_cache")))
REQUEST_TIMEOUT = float(os.getenv("GASPRO_REQUEST_TIMEOUT", "30"))
LOG_LEVEL = os.getenv("GASPRO_LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# ---------------------------------------------------------------------------
# Backend tables and local cache slots
# ---------------------------------------------------------------------------
PRODUCTION_TABLE = "production_records"
PERSONNEL_TABLE = "personnel_records"

PRODUCTION_CACHE_KEY = "gaspro_production_data"
PERSONNEL_CACHE_KEY = "gaspro_personnel_data"

# ---------------------------------------------------------------------------
# Operator identity and field catalogue
# ---------------------------------------------------------------------------
APP_NAME = "GasPro Analytics"

# status: "Active", "Maintenance" or "Standby"
FIELDS: list[dict[str, str]] = [
    {"id": "f1", "name": "Alpha West", "location": "North Sector", "status": "Active"},
    {"id": "f2", "name": "Bravo Shore", "location": "Coastal Basin", "status": "Active"},
    {"id": "f3", "name": "Charlie Deep", "location": "Southern Trench", "status": "Maintenance"},
    {"id": "f4", "name": "Delta Heights", "location": "East Highlands", "status": "Active"},
    {"id": "f5", "name": "Echo Flat", "location": "Central Plains", "status": "Active"},
    {"id": "f6", "name": "Foxtrot Valley", "location": "West Valley", "status": "Standby"},
]

FIELD_NAMES = [f["name"] for f in FIELDS]

# ---------------------------------------------------------------------------
# Admin gate (soft UI gate only)
# ---------------------------------------------------------------------------
ALLOWED_ADMIN_IPS = {
    "127.0.0.1",
    "::1",
    "203.0.113.1",
    "198.51.100.24",
    "180.211.179.202",
}
LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}

# ---------------------------------------------------------------------------
# Daily report workbook layout
# ---------------------------------------------------------------------------
# Report date lives in a single cell; each field row carries gas (MCF),
# condensate (BBL) and water (BBL) in columns C, D, E.
REPORT_DATE_CELL = "C3"

FIELD_CELL_MAP: list[dict[str, str]] = [
    {"field": "Alpha West", "gas": "C7", "condensate": "D7", "water": "E7"},
    {"field": "Bravo Shore", "gas": "C8", "condensate": "D8", "water": "E8"},
    {"field": "Charlie Deep", "gas": "C9", "condensate": "D9", "water": "E9"},
    {"field": "Delta Heights", "gas": "C10", "condensate": "D10", "water": "E10"},
    {"field": "Echo Flat", "gas": "C11", "condensate": "D11", "water": "E11"},
]

# ---------------------------------------------------------------------------
# Aggregation and display constants
# ---------------------------------------------------------------------------
TRAILING_WINDOWS = (7, 30)
TREND_WINDOW_DAYS = 7
OPTIMAL_OUTPUT_THRESHOLD = 1500.0  # MCF per day
RECORDS_PER_PAGE = 10

# Organogram establishment used when a personnel record carries no targets
DEFAULT_APPROVED_OFFICERS = 65
DEFAULT_APPROVED_EMPLOYEES = 240

EXCEL_EPOCH = "1899-12-30"
SECONDS_PER_DAY = 86_400

CHART_COLORS = ["#10b981", "#3b82f6", "#f59e0b", "#ef4444", "#8b5cf6", "#ec4899"]
