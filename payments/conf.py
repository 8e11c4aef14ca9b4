from dataclasses import dataclass

from django.conf import settings

from .exceptions import ConfigurationError

PAYMENT_URLS = {
    "production": "https://secure.payu.in/_payment",
    "test": "https://test.payu.in/_payment",
}
SERVICE_URLS = {
    "production": "https://info.payu.in/merchant/postservice?form=2",
    "test": "https://test.payu.in/merchant/postservice?form=2",
}


@dataclass(frozen=True)
class PayuConfig:
    """Merchant credentials and endpoints for one PayU account.

    Passed explicitly to the signer, builder and verifier so tests can use
    fixed credentials without touching the environment.
    """

    merchant_key: str
    salt: str
    payment_url: str = PAYMENT_URLS["production"]
    service_url: str = SERVICE_URLS["production"]
    service_provider: str = "payu_paisa"
    request_timeout: int = 30

    def __post_init__(self):
        # An empty salt makes every hash forgeable.
        if not self.merchant_key:
            raise ConfigurationError("PAYU_MERCHANT_KEY is required")
        if not self.salt:
            raise ConfigurationError("PAYU_SALT is required")

    @classmethod
    def from_settings(cls) -> "PayuConfig":
        mode = (getattr(settings, "PAYU_MODE", "") or "production").lower()
        if mode not in PAYMENT_URLS:
            raise ConfigurationError(f"Unknown PAYU_MODE {mode!r}")
        return cls(
            merchant_key=getattr(settings, "PAYU_MERCHANT_KEY", ""),
            salt=getattr(settings, "PAYU_SALT", ""),
            payment_url=getattr(settings, "PAYU_PAYMENT_URL", "") or PAYMENT_URLS[mode],
            service_url=getattr(settings, "PAYU_SERVICE_URL", "") or SERVICE_URLS[mode],
            service_provider=getattr(settings, "PAYU_SERVICE_PROVIDER", "") or "payu_paisa",
            request_timeout=getattr(settings, "PAYU_REQUEST_TIMEOUT", 30),
        )
