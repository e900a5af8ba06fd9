from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from dm_harvest.utils.config_dir import get_config_dir

LOGIN_URL = "https://x.com/login"
MESSAGES_URL = "https://x.com/messages"

# URL patterns that indicate the manual login has completed
LOGGED_IN_URL_PATTERNS = ("https://x.com/home*", "https://x.com/?*", "https://x.com/i/*")

# Maximum time to wait for a manual login
LOGIN_TIMEOUT_MS = 120000
# Maximum time to wait for network activity to settle on the messages page
NETWORK_IDLE_TIMEOUT_MS = 60000

STORAGE_STATE_FILE_NAME = "session_data.json"


def default_storage_state_path() -> Path:
    return get_config_dir() / STORAGE_STATE_FILE_NAME


class SessionConfig(BaseModel):
    """How to obtain an authenticated browser page on the messages screen."""

    # Run the launched browser without a window (ignored when connecting over CDP)
    headless: bool = False

    # Slow each Playwright operation down by this many ms for stability
    slow_mo_ms: int = Field(default=50, ge=0)

    # Connect to an already running Chrome (e.g. http://localhost:9222) instead of launching
    cdp_url: Optional[str] = None

    # Saved cookies/localStorage; created after the first manual login
    storage_state_path: Path = Field(default_factory=default_storage_state_path)

    viewport_width: int = 1280
    viewport_height: int = 800

    login_url: str = LOGIN_URL
    messages_url: str = MESSAGES_URL

    login_timeout_ms: int = Field(default=LOGIN_TIMEOUT_MS, ge=0)
    network_idle_timeout_ms: int = Field(default=NETWORK_IDLE_TIMEOUT_MS, ge=0)
