from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SKY_", env_file=".env", extra="ignore")

    HOST: str = "localhost"
    PORT: int = 8585
    # Timeouts in seconds
    REQUEST_TIMEOUT: float = 10.0
    CONNECT_TIMEOUT: float = 5.0
    STREAM_TIMEOUT: float = 30.0  # write and close-handshake deadline
    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
