from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    DASHBOARD_PORT: int = 8001
    LOG_LEVEL: str = "INFO"

    # Provider credentials (never defaulted)
    YOUTUBE_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("YOUTUBE_API_KEY", "YOUTUBE_API_KEY_ENABLED"),
    )
    RAPIDAPI_KEY: str = ""
    RAPIDAPI_KEY_TIKTOK: str = ""
    TWITTER_BEARER_TOKEN: str = ""
    FACEBOOK_ACCESS_TOKEN: str = ""

    # Alternative YouTube frontends
    INVIDIOUS_INSTANCES: str = "https://yewtu.be,https://invidious.fdn.fr,https://inv.nadeko.net"

    # Extraction behaviour
    EXTRACTION_TIMEOUT_SECONDS: float = 12.0
    HTTP_TIMEOUT_SECONDS: float = 15.0
    LAST_RESORT_DELAY_SECONDS: float = 1.0
    HASHTAG_LIMIT: int = 10
    USER_AGENT: str = "Mozilla/5.0 (compatible; VideoAnalyzer/1.0)"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def invidious_instances(self) -> list[str]:
        return [u.strip() for u in self.INVIDIOUS_INSTANCES.split(",") if u.strip()]


settings = Settings()
