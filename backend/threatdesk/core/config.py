from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "threatdesk-backend"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # Database
    # DATABASE_URL wins when set (e.g. sqlite:///./data/threats.db),
    # otherwise the Postgres DSN is built from the POSTGRES_* values.
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "threatdesk"
    POSTGRES_USER: str = "threatdesk"
    POSTGRES_PASSWORD: str = "threatdesk"

    # AbuseIPDB
    ABUSEIPDB_API_KEY: str | None = None
    ABUSEIPDB_BASE_URL: str = "https://api.abuseipdb.com/api/v2"
    ABUSEIPDB_MAX_AGE_DAYS: int = 90
    ABUSEIPDB_TIMEOUT_SECONDS: float = 10.0
    ABUSEIPDB_RETRY_ATTEMPTS: int = 2

    # Reputation cache
    REPUTATION_CACHE_TTL_DAYS: int = 7
    REPUTATION_BATCH_DELAY_SECONDS: float = 0.25

    # Detection rules
    BRUTE_FORCE_THRESHOLD: int = 5
    BRUTE_FORCE_WINDOW_SECONDS: int = 300
    BUSINESS_HOURS_START: int = 9
    BUSINESS_HOURS_END: int = 18
    DETECTION_LOOKBACK_HOURS: int = 24
    SUSPICIOUS_IP_PREFIXES: List[str] = ["10.0.0.", "192.168.", "0.0.0."]
    HIGH_RISK_SCORE_THRESHOLD: int = 50
    CRITICAL_RISK_SCORE_THRESHOLD: int = 75

    ALERT_DEDUPE_ENABLED: bool = False
    DETECT_ON_INGEST: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def SQLALCHEMY_DATABASE_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
