from pathlib import Path

from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    model_config = {"extra": "ignore", "env_file": ".env", "env_file_encoding": "utf-8"}

    # Database: a full DATABASE_URL wins; otherwise the DB_* parameters build a MySQL URL.
    DATABASE_URL: str | None = None
    DB_HOST: str | None = None
    DB_PORT: int = 3306
    DB_USER: str | None = None
    DB_PASSWORD: str | None = None
    DB_NAME: str | None = None
    DB_POOL_SIZE: int = 10
    SQLITE_FALLBACK_URL: str = "sqlite:///./dev.db"

    PORT: int = 3000

    COUNTRY_API: str = "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies"
    EXCHANGE_API: str = "https://open.er-api.com/v6/latest/USD"
    # Seconds; 0 disables the timeout
    REQUEST_TIMEOUT: float = 15

    # Logging configuration used by country_api.logging
    LOG_LEVEL: str = "INFO"
    CONSOLE_LOG_LEVEL: str = "INFO"

    # Base directory of the project
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    CACHE_DIR: Path = BASE_DIR / "cache"

    @property
    def summary_image_path(self) -> Path:
        return Path(self.CACHE_DIR) / "summary.png"

    @property
    def request_timeout(self) -> float | None:
        return self.REQUEST_TIMEOUT or None

    def database_url(self) -> str | URL:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.DB_HOST:
            return URL.create(
                "mysql+pymysql",
                username=self.DB_USER,
                password=self.DB_PASSWORD,
                host=self.DB_HOST,
                port=self.DB_PORT,
                database=self.DB_NAME,
            )
        return self.SQLITE_FALLBACK_URL


settings = Settings()
