from typing import Dict, List, Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    API_TITLE: str = "Gondwana Collection Rates API"
    API_DESCRIPTION: str = "Quotes accommodation availability and rates for the booking widget"
    API_VERSION: str = "1.0.0"
    APP_ENV: str = "development"

    VENDOR_API_URL: str = "https://dev.gondwana-collection.com/Web-Store/Rates/Rates.php"
    VENDOR_TIMEOUT: float = 30.0
    VENDOR_CONNECT_TIMEOUT: float = 10.0
    VENDOR_MOCK: bool = False  # skip the vendor and return a fixed nightly rate

    # Insertion order matters: the first entry is the fallback unit code
    UNIT_TYPE_MAPPING: Dict[str, int] = {
        "Standard Unit": -2147483637,
        "Deluxe Unit": -2147483456,
    }
    ALWAYS_AVAILABLE_UNITS: List[str] = []
    DEFAULT_CURRENCY: str = "NAD"
    MOCK_NIGHTLY_RATE: float = 1250.0

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT: int = 100
    RATE_LIMIT_WINDOW: int = 300  # 5 minutes
    RATE_LIMIT_STATE_FILE: str = "./data/cache/rate_limit.json"

    ALLOWED_ORIGINS: List[str] = ["*"]
    SECURITY_HEADERS: Dict[str, str] = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    }
    FRONTEND_DIR: Optional[str] = None

    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
