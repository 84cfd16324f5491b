from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .deadlines import StageBudgets

ALLOWED_QUOTE_PROVIDERS = {"awesomeapi", "static"}


class Settings(BaseSettings):
    """Server settings loaded from environment with defaults.

    Environment variables use the QUOTE_RELAY_ prefix (e.g. QUOTE_RELAY_DB_FILENAME,
    QUOTE_RELAY_FETCH_TIMEOUT_MS). Stage timeouts are read once at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUOTE_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Basic app metadata
    app_name: str = "Quote Relay"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "data.db"
    db_path: Optional[Path] = None  # derived if not provided

    # Upstream provider
    quote_provider: str = "awesomeapi"
    provider_url: AnyHttpUrl = "https://economia.awesomeapi.com.br/json/last/USD-BRL"
    currency_pair: str = "USDBRL"

    # Stage budgets (ms): fetch ~ 2/3 of request, persist ~ fetch / 20
    request_timeout_ms: int = 300
    fetch_timeout_ms: int = 200
    persist_timeout_ms: int = 10

    # Listener
    host: str = "127.0.0.1"
    port: int = 8080

    @model_validator(mode="after")
    def check_provider_and_budgets(self) -> "Settings":
        if self.quote_provider not in ALLOWED_QUOTE_PROVIDERS:
            raise ValueError(
                f"Unsupported quote_provider '{self.quote_provider}'. Allowed: {sorted(ALLOWED_QUOTE_PROVIDERS)}"
            )
        # raises ValueError when the hierarchy is broken
        self.budgets
        return self

    @property
    def budgets(self) -> StageBudgets:
        return StageBudgets.from_millis(
            self.request_timeout_ms, self.fetch_timeout_ms, self.persist_timeout_ms
        )

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        self.db_path.parent.mkdir(parents=True, exist_ok=True)


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUOTE_RELAY_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    server_url: str = "http://localhost:8080/cotacao"
    timeout_ms: int = 300
    output_path: Path = Path("cotacao.txt")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
