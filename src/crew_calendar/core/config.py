from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir

APP_NAME = "Crew Calendar"
APP_AUTHOR = "CrewCalendar"
DATA_DIR = Path(os.getenv("CREW_DATA_DIR") or user_data_dir(APP_NAME, APP_AUTHOR))
AVAILABILITY_FILE = DATA_DIR / "availability.json"
FALLBACK_FILE = DATA_DIR / "availability.fallback.json"

DEFAULT_BLOCK_REASON = "Unavailable"
DEFAULT_EVENT_TITLE = "Untitled Event"
TRAVEL_LABEL = "Travel Day"
MAX_TRAVEL_DAYS = 14
