# report_api/config.py
import os

REPORTS_API_URL = os.getenv("REPORTS_API_URL", "http://localhost:3000").rstrip("/")
ANALYTICS_API_URL = os.getenv("ANALYTICS_API_URL", REPORTS_API_URL).rstrip("/")
API_TOKEN = os.getenv("API_TOKEN")

PROVIDER_TIMEOUT = float(os.getenv("PROVIDER_TIMEOUT", "20.0"))
ANALYTICS_TIMEOUT = float(os.getenv("ANALYTICS_TIMEOUT", "30.0"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")]

# slicers / filter pane
SLICER_MAX_VALUES = int(os.getenv("SLICER_MAX_VALUES", "500"))
FILTER_PANE_MAX_VALUES = int(os.getenv("FILTER_PANE_MAX_VALUES", "50"))

# previews
TABLE_PAGE_SIZE = int(os.getenv("TABLE_PAGE_SIZE", "100"))
DRY_RUN_ROWS = int(os.getenv("DRY_RUN_ROWS", "50"))

# sessions
SESSION_TTL_SECONDS = float(os.getenv("SESSION_TTL_SECONDS", "3600"))
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "100"))
