from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """
    Settings class to retrieve environment variables.
    """

    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    DOMAIN: str     # localhost or production domain

    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_FROM: str = "noreply@perfumepoint.com"
    MAIL_PORT: int = 465
    MAIL_SERVER: str = "localhost"
    MAIL_FROM_NAME: str = "Perfume Point"
    MAIL_STARTTLS: bool = False
    MAIL_SSL_TLS: bool = True
    USE_CREDENTIALS: bool = True
    VALIDATE_CERTS: bool = True
    SUPPRESS_SEND: bool = False

    # bcrypt cost for the masked card fields stored on orders
    CARD_HASH_ROUNDS: int = 10

    # Orders
    INVOICE_BASE_URL: str = "https://example.com/invoices"
    REFUND_WINDOW_DAYS: int = 30

    # Mock fulfillment, see services/order_status_simulator.py
    ORDER_SIMULATOR_ENABLED: bool = True
    ORDER_SIMULATOR_INTERVAL: float = 10.0
    PAYMENT_COMPLETION_PROBABILITY: float = 0.2
    DELIVERY_PROBABILITY: float = 0.5

    LOG_LEVEL: Optional[str] = "INFO"

    model_config = SettingsConfigDict(
        env_file='.env',
        extra='ignore',
    )


Config = Settings()
