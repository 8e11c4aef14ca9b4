from django.core.exceptions import ImproperlyConfigured


class PayuError(Exception):
    """Base class for payment-flow failures.

    ``code`` is the stable identifier reported in result objects and JSON
    responses; the message is for logs only.
    """

    code = "payment_error"


class PaymentValidationError(PayuError):
    code = "validation_error"


class ConfigurationError(PayuError, ImproperlyConfigured):
    code = "configuration_error"


class VerificationError(PayuError):
    code = "verification_failed"


class StoreError(PayuError):
    code = "store_unavailable"


class GatewayError(PayuError):
    code = "gateway_error"


class PaymentDataError(PayuError):
    """The store rejected the result itself; retrying the same callback cannot succeed."""

    code = "data_error"
