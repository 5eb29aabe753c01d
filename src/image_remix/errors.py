"""Domain errors shared by services and mapped to HTTP statuses by the API."""


class ImageRemixError(Exception):
    """Base class for expected application errors."""


class ValidationError(ImageRemixError):
    """Raised when caller input is missing or malformed."""


class NotFoundError(ImageRemixError):
    """Raised when a checkout session or row does not exist."""


class WebhookVerificationError(ImageRemixError):
    """Raised when a Stripe event cannot be authenticated or parsed."""


class IdentityProvisioningError(ImageRemixError):
    """Raised when the identity provider returns no usable anonymous session."""


class ProvisioningError(ImageRemixError):
    """Raised when a required fulfillment row could not be written."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class MissingSessionTokensError(ImageRemixError):
    """Raised when a payment-session mapping has no stored auth tokens."""
