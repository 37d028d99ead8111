"""
Configuration module for the call panel API
"""

import os
from pathlib import Path


def env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _read_version_from_repo(default: str = "dev") -> str:
    try:
        version_file = Path(__file__).resolve().parents[1] / "VERSION"
        v = version_file.read_text(encoding="utf-8").strip()
        if v:
            return v
    except OSError:
        pass
    return os.getenv("APP_VERSION", default)


API_VERSION = _read_version_from_repo()

# Database configuration
sqlite_path = os.getenv("SQLITE_PATH", "./callpanel.db")
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{sqlite_path}")

# API configuration
API_PREFIX = os.getenv("API_PREFIX", "/api/v1")
APP_PORT = int(os.getenv("APP_PORT", "3000"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# System admin key (tenant management, pairing validation).
# Empty means every admin call is refused.
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")

# Pairing configuration
PAIRING_CODE_TTL_SECONDS = int(os.getenv("PAIRING_CODE_TTL_SECONDS", "300"))
CLIENT_TOKEN_TTL_SECONDS = int(os.getenv("CLIENT_TOKEN_TTL_SECONDS", str(24 * 60 * 60)))

# History configuration
HISTORY_DEFAULT_LIMIT = int(os.getenv("HISTORY_DEFAULT_LIMIT", "10"))
HISTORY_MAX_LIMIT = int(os.getenv("HISTORY_MAX_LIMIT", "50"))

# Metrics endpoint is public unless disabled (then it requires x-admin-key)
PUBLIC_METRICS = env_bool("PUBLIC_METRICS", True)

# Socket fan-out
SOCKET_SEND_QUEUE_MAX = int(os.getenv("SOCKET_SEND_QUEUE_MAX", "100"))

# Logging configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
LOG_SAMPLE_RATE = float(os.getenv("LOG_SAMPLE_RATE", "1.0"))
LOG_EXCLUDE_PATHS = set(p for p in os.getenv("LOG_EXCLUDE_PATHS", "/health,/metrics").split(",") if p)
