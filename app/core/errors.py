from typing import Any, Optional


class ServiceError(Exception):
    """
    Base class for domain errors surfaced to API callers.

    Every subclass carries a stable `kind`, the HTTP status it maps to and a
    human readable `detail`. Optional `details` are rendered alongside the
    message by the global error handler.
    """

    kind = "ServiceError"
    status_code = 500
    default_detail = "The request could not be completed."

    def __init__(self, detail: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        self.detail = detail or self.default_detail
        self.details = details
        super().__init__(self.detail)


# --- Input errors ---

class InvalidInput(ServiceError):
    kind = "InvalidInput"
    status_code = 400
    default_detail = "Invalid request."


class PlanNotFound(ServiceError):
    kind = "PlanNotFound"
    status_code = 404
    default_detail = "Plan not found."


# --- Entitlement and quota errors ---

class VoiceNotAllowed(ServiceError):
    kind = "VoiceNotAllowed"
    status_code = 403
    default_detail = "Voice not available in your plan. Please upgrade to access premium voices."


class QuotaExceeded(ServiceError):
    kind = "QuotaExceeded"
    status_code = 429
    limit_kind = "characters"


class CharacterCapExceeded(QuotaExceeded):
    kind = "CharacterCapExceeded"
    limit_kind = "characters"
    default_detail = "Monthly character limit exceeded. Please upgrade your plan."


class CallCapExceeded(QuotaExceeded):
    kind = "CallCapExceeded"
    limit_kind = "calls"
    default_detail = "Monthly API call limit exceeded. Please upgrade your plan."


# --- Provider errors ---

class ProviderFailure(ServiceError):
    """
    Raised by speech/script providers. `retryable` tells the broker whether a
    different provider may succeed where this one failed.
    """

    kind = "ProviderError"
    status_code = 500
    default_detail = "Speech provider failed to generate audio."
    retryable = True

    def __init__(self, detail: Optional[str] = None, provider: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(detail, details)
        self.provider = provider


class ProviderError(ProviderFailure):
    pass


class Unconfigured(ProviderFailure):
    kind = "Unconfigured"
    default_detail = "Provider credentials are not configured."


class ProviderUnavailable(ProviderFailure):
    kind = "ProviderUnavailable"
    default_detail = "The requested provider is not configured."
    retryable = False


class NoProviderConfigured(ProviderFailure):
    kind = "NoProviderConfigured"
    default_detail = "No TTS services available. Please check API configurations."
    retryable = False


class UpstreamQuotaExceeded(ProviderFailure):
    kind = "QuotaExceededUpstream"
    default_detail = "Provider API quota exceeded. Please try again later."


class NoAudioData(ProviderFailure):
    kind = "NoAudioPayload"
    default_detail = "No audio data received from the generative model."


class NoAudioContent(ProviderFailure):
    kind = "NoAudioContent"
    default_detail = "No audio content received from the cloud TTS provider."


class ProviderTimeout(ProviderFailure):
    kind = "ProviderTimeout"
    default_detail = "Provider did not respond in time."


class SafetyBlocked(ProviderFailure):
    kind = "SafetyBlocked"
    status_code = 400
    default_detail = "Content blocked by safety filters. Please try different text."
    retryable = False


class InvalidVoice(ProviderFailure):
    kind = "InvalidVoice"
    status_code = 400
    default_detail = "Invalid voice selection."
    retryable = False


# --- Persistence errors ---

class PersistenceError(ServiceError):
    kind = "PersistenceError"
    status_code = 500
    default_detail = "Failed to store generated audio."


class ArtifactNotFound(ServiceError):
    kind = "ArtifactNotFound"
    status_code = 404
    default_detail = "Audio file not found."


# --- Payment errors ---

class PaymentError(ServiceError):
    kind = "PaymentError"
    status_code = 400
    default_detail = "Payment could not be processed."


class InvalidPaymentSignature(PaymentError):
    kind = "InvalidPaymentSignature"
    default_detail = "Invalid payment signature."


class PaymentOrderNotFound(PaymentError):
    kind = "PaymentOrderNotFound"
    status_code = 404
    default_detail = "Payment order not found."


class PaymentStateError(PaymentError):
    kind = "PaymentStateError"
    status_code = 409
    default_detail = "Payment order can no longer be verified."


class PaymentGatewayUnavailable(PaymentError):
    kind = "PaymentGatewayUnavailable"
    status_code = 500
    default_detail = "Payment service not available."
