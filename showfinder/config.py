"""Project configuration.

Loads search defaults from search_config.json when available, falling back to
sensible defaults. Keep remote function names and request shapes centralized here.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

_REPO_ROOT = Path(__file__).resolve().parent.parent

# --- Environment ---

SUPABASE_URL_ENV = "SUPABASE_URL"
SUPABASE_KEY_ENV = "SUPABASE_ANON_KEY"

# --- Remote store ---

REST_PREFIX = "/rest/v1"
SHOWS_TABLE = "shows"
SHOWS_ORDER_BY = "start_date"

RPC_NEARBY_SHOWS = "nearby_shows"
RPC_FIND_FILTERED_SHOWS = "find_filtered_shows"
RPC_FIND_SHOWS_WITHIN_RADIUS = "find_shows_within_radius"

# --- Search defaults ---

DEFAULT_RADIUS_MILES = 25.0
DEFAULT_WINDOW_DAYS = 30
DEFAULT_PAGE_SIZE = 20
DEFAULT_STATUS = "ACTIVE"

# --- Geo ---

EARTH_RADIUS_MILES = 3958.8
DEGENERATE_CENTER_EPSILON = 0.1

# --- HTTP ---

HTTP_TIMEOUT_SECONDS = 10
# One attempt per strategy; the strategy chain is the fallback.
HTTP_RETRY_MAX = 1
HTTP_BACKOFF_BASE = 0.5
HTTP_BACKOFF_MAX = 8.0


def load_search_config(path: Optional[str] = None) -> bool:
    """Load search configuration from a JSON file.

    Updates module-level globals with values from the config file.
    Returns True if config was loaded, False if file not found.
    """
    if path is None:
        path = str(_REPO_ROOT / "search_config.json")

    config_path = Path(path)
    if not config_path.exists():
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)

    globals_ref = globals()

    defaults = data.get("defaults", {})
    if "radius_miles" in defaults:
        globals_ref["DEFAULT_RADIUS_MILES"] = float(defaults["radius_miles"])
    if "window_days" in defaults:
        globals_ref["DEFAULT_WINDOW_DAYS"] = int(defaults["window_days"])
    if "page_size" in defaults:
        globals_ref["DEFAULT_PAGE_SIZE"] = int(defaults["page_size"])
    if "status" in defaults:
        globals_ref["DEFAULT_STATUS"] = str(defaults["status"])

    store = data.get("store", {})
    if store.get("table"):
        globals_ref["SHOWS_TABLE"] = str(store["table"])
    rpc = store.get("rpc", {})
    if rpc.get("nearby_shows"):
        globals_ref["RPC_NEARBY_SHOWS"] = str(rpc["nearby_shows"])
    if rpc.get("find_filtered_shows"):
        globals_ref["RPC_FIND_FILTERED_SHOWS"] = str(rpc["find_filtered_shows"])
    if rpc.get("find_shows_within_radius"):
        globals_ref["RPC_FIND_SHOWS_WITHIN_RADIUS"] = str(rpc["find_shows_within_radius"])

    http = data.get("http", {})
    if "timeout_seconds" in http:
        globals_ref["HTTP_TIMEOUT_SECONDS"] = float(http["timeout_seconds"])
    if "retry_max" in http:
        globals_ref["HTTP_RETRY_MAX"] = max(1, int(http["retry_max"]))

    return True
