from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # Semantic version of the engine and its default rule set
    ENGINE_VERSION: str = "1.0.0"
    # Optional JSON export of posts/replies/escalations served by the API
    DATA_FILE: Optional[str] = None
    # Optional JSON rule set replacing the built-in escalation rules
    RULES_FILE: Optional[str] = None
    # Number of most recent posts sampled for sentiment in user needs prediction
    SENTIMENT_SAMPLE_SIZE: int = 10
    # Response-time target used by escalation analytics
    RESPONSE_SLA_HOURS: float = 24.0
    # Per-IP request budget for the HTTP surface
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SEC: int = 60
    # Largest accepted request body
    MAX_BODY_BYTES: int = 64 * 1024

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
