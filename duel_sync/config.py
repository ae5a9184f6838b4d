from pydantic_settings import BaseSettings


class SyncSettings(BaseSettings):
    enabled: bool = False
    store_url: str = "http://localhost:8080/store.php"
    game_type: str = "splendor-duel"
    # Seconds between two polls of the remote store.
    poll_interval: float = 3.0
    max_conflict_retries: int = 3
    # Consecutive failed polls before the session is reported as degraded.
    degraded_after_failures: int = 3
    request_timeout: float = 10.0

    class Config:
        env_prefix = "DUEL_SYNC_"
        env_file = ".env"
        extra = "ignore"


settings = SyncSettings()
