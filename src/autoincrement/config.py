from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Process configuration loaded from environment variables."""

    database_url: str  # e.g. mongodb://localhost:27017/app, the path names the database
    debug: bool = False
    counters_collection: str = "identitycounters"
    bootstrap_retry_interval: float = 0.1  # Seconds between counter bootstrap attempts while the store is failing

    model_config = {
        "env_file": [".env"],
        "env_prefix": "AUTOINCREMENT_",
        "extra": "ignore",
    }
