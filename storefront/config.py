from decimal import Decimal
from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    postgres_user: str = "storefront"
    postgres_password: str = ""
    postgres_db: str = "storefront"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # full SQLAlchemy URL, wins over the postgres_* parts (sqlite in tests)
    database_url_override: Optional[str] = None

    env: str = "local"
    log_level: str = "INFO"

    # checkout pricing
    free_shipping_threshold: Decimal = Decimal("99.00")
    flat_shipping_fee: Decimal = Decimal("9.99")
    tax_rate: Decimal = Decimal("0.08")

    order_number_max_attempts: int = 20
    reject_unknown_payment_methods: bool = False

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

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
