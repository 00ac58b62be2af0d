from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Staffbase settings
    STAFFBASE_BASE_URL: str
    STAFFBASE_TOKEN: str
    STAFFBASE_SPACE_ID: str
    HIDDEN_ATTRIBUTE_KEY: str

    # =================================================================
    # OUTBOUND TRANSPORT - the platform throttles with HTTP 429
    # =================================================================
    STAFFBASE_REQUEST_TIMEOUT: float = 30.0
    STAFFBASE_MAX_ATTEMPTS: int = 3
    STAFFBASE_RETRY_DELAY_SECONDS: float = 2.0  # fixed, not exponential

    # =================================================================
    # PAGINATION AND FAN-OUT
    # =================================================================
    DIRECTORY_PAGE_SIZE: int = 100
    DIRECTORY_PAUSE_EVERY_ROWS: int = 1000
    DIRECTORY_PAUSE_SECONDS: float = 0.5
    INSTALLATION_PAGE_SIZE: int = 100
    FANOUT_BATCH_SIZE: int = 5

    # =================================================================
    # CONTENT CONVENTIONS
    # =================================================================
    NEWS_PLUGIN_ID: str = "news"
    CONTENT_LOCALES: list[str] = ["en_US", "de_DE"]
    DEFAULT_DEPARTMENT: str = "Uncategorized"
    LARGE_BATCH_CONFIRM_THRESHOLD: int = 5000

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def api_host(self) -> str | None:
        """
        Extract the platform host from STAFFBASE_BASE_URL, e.g.
        https://app.staffbase.com/api -> app.staffbase.com
        """
        try:
            return urlparse(self.STAFFBASE_BASE_URL).hostname
        except Exception:
            return None

    def get_client_config(self) -> dict:
        """Keyword arguments for StaffbaseClient."""
        config = {
            "base_url": self.STAFFBASE_BASE_URL,
            "token": self.STAFFBASE_TOKEN,
            "timeout": self.STAFFBASE_REQUEST_TIMEOUT,
            "max_attempts": self.STAFFBASE_MAX_ATTEMPTS,
            "retry_delay": self.STAFFBASE_RETRY_DELAY_SECONDS,
        }

        if self.environment == "development":
            # Fail faster locally
            config.update({"timeout": min(self.STAFFBASE_REQUEST_TIMEOUT, 15.0)})

        return config


settings = Settings()
