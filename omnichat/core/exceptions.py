"""
Exceptions raised by the Omnichat pipeline.

Each exception carries an ErrorCode so the API layer can map it to an HTTP
status without inspecting messages.
"""

from omnichat.models.enums import ErrorCode


class OmnichatError(Exception):
    """Base exception for pipeline errors."""

    def __init__(self, message: str, error_code: ErrorCode):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class WebhookConfigurationError(OmnichatError):
    """Raised when the app secret or verify token is not configured."""

    def __init__(self, missing: str):
        super().__init__(
            f"{missing} is not configured; refusing webhook",
            ErrorCode.WEBHOOK_NOT_CONFIGURED,
        )


class WebhookVerificationError(OmnichatError):
    """Raised when a subscription handshake is rejected."""

    def __init__(self):
        super().__init__("Forbidden", ErrorCode.VERIFICATION_FAILED)


class SignatureValidationError(OmnichatError):
    """Raised when the payload signature does not match."""

    def __init__(self):
        super().__init__("Invalid signature", ErrorCode.SIGNATURE_VALIDATION_FAILED)


class PayloadValidationError(OmnichatError):
    def __init__(self, detail: str):
        super().__init__(f"Malformed webhook payload: {detail}", ErrorCode.INVALID_PAYLOAD)


class ChannelNotFoundError(OmnichatError):
    def __init__(self, channel_id: int):
        self.channel_id = channel_id
        super().__init__(f"Channel {channel_id} not found", ErrorCode.NOT_FOUND)


class CampaignNotFoundError(OmnichatError):
    def __init__(self, campaign_id: int):
        self.campaign_id = campaign_id
        super().__init__("Campaign not found", ErrorCode.NOT_FOUND)


class CampaignStateError(OmnichatError):
    """Raised when a campaign cannot move to the requested state."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.INVALID_STATE)


class CredentialError(OmnichatError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CREDENTIALS_MISSING)


class TemplateSyncError(OmnichatError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.TEMPLATE_SYNC_FAILED)
