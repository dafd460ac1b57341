"""
Application configuration management using Pydantic Settings
Handles all environment variables and service tunables
"""

from decimal import Decimal
from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import Dict, List
from functools import lru_cache

class Settings(BaseSettings):
    """Main application settings"""
    
    # Application Settings
    APP_NAME: str = "Cart Engagement API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    
    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    
    # CORS Configuration
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    
    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "1000/hour"
    RATE_LIMIT_SHARE_RESOLVE: str = "30/minute"
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    
    # Saved carts
    SNAPSHOT_REQUIRE_NAME: bool = False
    SNAPSHOT_REQUIRE_LINES: bool = False
    ACTIVE_SNAPSHOT_WINDOW_DAYS: int = 7
    
    # Sharing
    SHARE_TOKEN_BYTES: int = 24
    
    # Bulk operations: discount code -> percent off
    DISCOUNT_CODES: Dict[str, int] = {"SAVE10": 10, "BULK20": 20, "WELCOME5": 5}
    
    # Price alerts
    # Seed prices for the built-in catalog oracle: product id -> price
    CATALOG_PRICES: Dict[str, Decimal] = {}
    PRICE_SWEEP_INTERVAL_SECONDS: float = 5 * 60
    DEFAULT_NOTIFICATION_CAP: int = 3
    
    # Abandonment recovery
    RECOVERY_INITIAL_DELAY_HOURS: float = 1
    RECOVERY_REMINDER_DELAY_HOURS: float = 24
    RECOVERY_FINAL_DELAY_HOURS: float = 72
    
    # Recommendations
    UPSELL_PRICE_THRESHOLD: float = 100.0
    
    @field_validator("DISCOUNT_CODES")
    @classmethod
    def normalize_discount_codes(cls, v):
        # Codes are matched case-insensitively
        return {code.upper(): percent for code, percent in v.items()}
    
    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance
    This ensures settings are loaded only once
    """
    return Settings()

# Global settings instance
settings = get_settings()
