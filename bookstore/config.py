from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings
from urllib.parse import quote_plus

class Settings(BaseSettings):
    env: str = "local"
    log_level: str = "INFO"

    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "bookstore"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # full URL wins over the postgres_* parts (sqlite in tests)
    database_url_override: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # guest cart cookie
    session_secret_key: Optional[str] = None
    session_cookie_name: str = "bookstore_session"
    session_idle_days: int = 7
    guest_cart_max_lines: int = 20

    # cart & pricing rules
    max_quantity_per_item: int = 10
    tax_rate: float = 0.10
    free_shipping_threshold: float = 299000
    shipping_fee: float = 30000

    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ]

    @property
    def database_url(self):
        if self.database_url_override:
            return self.database_url_override
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def session_max_age(self) -> int:
        return self.session_idle_days * 24 * 60 * 60

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
