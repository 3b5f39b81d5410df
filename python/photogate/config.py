"""Default settings for photogate."""
import os
from pathlib import Path


# Analysis
DEFAULT_BLOCK_SIZE = 100
DEFAULT_CHANNEL = "blue"
DEADLINE_BASE_SECONDS = 2.0
DEADLINE_PER_MEGAPIXEL_SECONDS = 4.0

# Uploads
MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5MB

# Storage
STORE_ENV_VAR = "PHOTOGATE_STORE"
DEFAULT_STORE_DIR = Path("photogate-data")

# Actor tokens
TOKEN_TTL_SECONDS = 3600

# Logging
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def default_store_dir() -> Path:
    """Store directory from the environment, falling back to ./photogate-data."""
    return Path(os.environ.get(STORE_ENV_VAR) or DEFAULT_STORE_DIR)
