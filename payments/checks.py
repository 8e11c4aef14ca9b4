from django.core.checks import Error, Tags, register

from .conf import PayuConfig
from .exceptions import ConfigurationError


@register(Tags.security)
def check_payu_credentials(app_configs, **kwargs):
    """Refuse to start without PayU credentials."""
    try:
        PayuConfig.from_settings()
    except ConfigurationError as e:
        return [
            Error(
                str(e),
                hint="Set PAYU_MERCHANT_KEY and PAYU_SALT in the environment or .env file.",
                id="payments.E001",
            )
        ]
    return []
