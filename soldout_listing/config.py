from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Set
import os
from pathlib import Path

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./soldout_listing.db")
    DB_ECHO: bool = False

    # Frontend
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Listing Settings
    LISTING_DEFAULT_LIMIT: int = 24
    LISTING_MAX_LIMIT: int = 100
    LISTING_DEFAULT_SORT: str = "name-asc"
    LISTING_SORT_KEYS: Set[str] = {"name-asc", "name-desc", "price-asc", "price-desc", "newest"}

    # Sold-out products are pushed behind the available ones
    SOLD_OUT_TO_END_ENABLED: bool = True
    SOLD_OUT_SUBSCRIBER_PRIORITY: int = -200

    # Logging Settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    SAMPLE_RATE: float = 0.1  # Log 10% of requests

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    """
    Create cached instance of settings.
    This way we don't have to load the environment every time we need settings.
    """
    return Settings()

# Create .env.example file if it doesn't exist
def create_env_example():
    env_example = """# Database
DATABASE_URL=sqlite:///./soldout_listing.db
DB_ECHO=false

# Frontend
FRONTEND_URL=http://localhost:3000

# Listing Settings
LISTING_DEFAULT_LIMIT=24
LISTING_MAX_LIMIT=100
LISTING_DEFAULT_SORT=name-asc

# Sold-out products at the end of the listing
SOLD_OUT_TO_END_ENABLED=true
SOLD_OUT_SUBSCRIBER_PRIORITY=-200

# Logging Settings
LOG_LEVEL=INFO
LOG_DIR=logs
SAMPLE_RATE=0.1 # Log 10% of requests

# Environment
ENVIRONMENT=development
"""
    example_path = Path(".env.example")
    if not example_path.exists():
        with open(example_path, "w") as f:
            f.write(env_example)

if __name__ == "__main__":
    create_env_example()
