"""
Configuration module for the IP geolocation API
"""

import os
from pathlib import Path

def env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")

def _read_version_from_repo(default: str = "dev") -> str:
    try:
        # repo root: ipgeo_api/.. (two parents up)
        version_file = Path(__file__).resolve().parents[1] / "VERSION"
        v = version_file.read_text(encoding="utf-8").strip()
        if v:
            return v
    except OSError:
        pass
    return os.getenv("APP_VERSION", default)

APP_NAME = "ipgeo-api"
APP_VERSION = _read_version_from_repo()

# Server configuration
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8080"))

# GeoIP configuration
GEOIP_DB_DIR = os.getenv("GEOIP_DB_DIR", "/data/geo")
GEOIP_DB_CITY = os.getenv("GEOIP_DB_CITY", os.path.join(GEOIP_DB_DIR, "GeoLite2-City.mmdb"))
GEOIP_DB_ASN = os.getenv("GEOIP_DB_ASN", os.path.join(GEOIP_DB_DIR, "GeoLite2-ASN.mmdb"))
GEOIP_LOCALE = os.getenv("GEOIP_LOCALE", "en")

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
ACCESS_LOG_ENABLED: bool = env_bool("ACCESS_LOG_ENABLED", True)
