from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    CORS_ORIGINS: List[str] = ["*"]
    # Fixed seed for reproducible deals; None shuffles differently every game.
    DEFAULT_SEED: Optional[int] = None

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
