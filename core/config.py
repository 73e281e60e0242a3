from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings


def _strip_inline_comment(value: str) -> str:
    """Strip trailing inline comments that python-dotenv keeps for unquoted values."""
    idx = value.find(" #")
    if idx != -1:
        value = value[:idx]
    return value.strip()


class Settings(BaseSettings):
    hotel_api_base_url: str = "https://hotelapi.loyalty.dev/api"

    @field_validator("hotel_api_base_url", mode="before")
    @classmethod
    def clean_base_url(cls, v: str) -> str:
        if isinstance(v, str):
            return _strip_inline_comment(v).rstrip("/")
        return v

    use_real_apis: bool = True
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Pricing feed polling
    price_poll_max_attempts: int = 15
    price_poll_delay_ms: int = 1500
    search_deadline_seconds: float = 60.0  # 0 disables the overall deadline
    search_metadata_reserve_seconds: float = 10.0  # held back from pricing for the metadata call
    http_timeout_seconds: float = 10.0

    # Defaults substituted for optional search parameters
    default_lang: str = "en_US"
    default_currency: str = "SGD"
    default_country_code: str = "SG"
    default_partner_id: str = "1089"
    landing_page: str = "wl-acme-earn"
    product_type: str = "earn"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
