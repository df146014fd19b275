import os
from pathlib import Path
from typing import Optional

# Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv()

# Interface poller
DEFAULT_POLL_INTERVAL = float(os.getenv("NETREACH_POLL_INTERVAL", "2.0"))
CELLULAR_INTERFACE_PATTERNS = ["wwan*", "wwp*", "rmnet*", "ccmni*", "pdp_ip*"]
TRANSIENT_INTERFACE_PATTERNS = ["ppp*"]

# Logging
DEFAULT_LOG_LEVEL = os.getenv("NETREACH_LOG_LEVEL", "info")

# Thread join timeouts (seconds)
POLLER_JOIN_TIMEOUT = 2.0


def config_dir_override() -> Optional[Path]:
    """NETREACH_CONFIG_DIR as a Path, or None when unset."""
    value = os.getenv("NETREACH_CONFIG_DIR", "")
    return Path(value).expanduser() if value else None
