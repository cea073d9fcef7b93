"""Configuration settings for the delivery fee service."""

import os
from typing import Final, Optional
from dotenv import load_dotenv

load_dotenv()

# Weather feed configuration
WEATHER_FEED_URL: str = os.getenv(
    "WEATHER_FEED_URL",
    "https://www.ilmateenistus.ee/ilma_andmed/xml/observations.php"
)
USER_AGENT: Final[str] = "DeliveryFeeService/0.1 (user@example.com)"
_fetch_timeout = os.getenv("FETCH_TIMEOUT_SECONDS")
FETCH_TIMEOUT_SECONDS: Optional[float] = float(_fetch_timeout) if _fetch_timeout else None  # No timeout unless set

# Ingestion schedule
FETCH_CRON: str = os.getenv("FETCH_CRON", "15 * * * *")  # 15 minutes past every hour
FETCH_ON_STARTUP: bool = os.getenv("FETCH_ON_STARTUP", "false").lower() == "true"

# Server configuration
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8000"))
DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

# Observation store configuration ("redis" or "memory")
OBSERVATION_STORE: str = os.getenv("OBSERVATION_STORE", "redis").lower()
OBSERVATION_KEY_PREFIX: str = os.getenv("OBSERVATION_KEY_PREFIX", "delivery-fee")

# Redis cache configuration
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
CACHE_EXPIRE_SECONDS: int = int(os.getenv("CACHE_EXPIRE_SECONDS", "60"))  # 60 seconds default
CACHE_PREFIX: str = os.getenv("CACHE_PREFIX", "delivery-fee-cache")
