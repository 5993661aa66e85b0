from pydantic_settings import BaseSettings, SettingsConfigDict
import os


class Settings(BaseSettings):
    """Application settings configuration."""

    # Application
    APP_NAME: str = "Blood Bank Store Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Primary document store
    MONGODB_URI: str = os.getenv(
        "MONGODB_URI",
        "mongodb://localhost:27017/bloodbank?authSource=admin"
    )
    MONGODB_DATABASE: str = "bloodbank"
    SERVER_SELECTION_TIMEOUT_MS: int = 5000
    CONNECT_TIMEOUT_MS: int = 5000

    # Fallback store
    FALLBACK_DB_FILE: str = os.getenv(
        "FALLBACK_DB_FILE",
        os.path.join(os.getcwd(), "inmemory_db.json")
    )

    # Domain rules
    DONATION_INTERVAL_DAYS: int = 90

    # API Configuration
    API_V1_STR: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Monitoring
    ENABLE_METRICS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()
