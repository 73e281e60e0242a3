"""Provider factory — returns the Mock or Loyalty provider based on USE_REAL_APIS."""
import httpx

from core.config import Settings, settings as default_settings
from providers.base import BaseHotelInventoryProvider


def get_provider(
    client: httpx.AsyncClient, config: Settings = default_settings
) -> BaseHotelInventoryProvider:
    """Return the active hotel inventory provider.

    The upstream base URL comes from config and is injected into the provider.
    """
    if config.use_real_apis:
        from providers.real.loyalty import LoyaltyHotelProvider
        return LoyaltyHotelProvider(
            client,
            config.hotel_api_base_url,
            max_attempts=config.price_poll_max_attempts,
            delay_ms=config.price_poll_delay_ms,
            landing_page=config.landing_page,
            product_type=config.product_type,
        )
    from providers.mock.hotel_provider import MockHotelProvider
    return MockHotelProvider()
