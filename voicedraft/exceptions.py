"""Error taxonomy for VoiceDraft."""

from typing import Optional


class VoiceDraftError(Exception):
    """Base class for all VoiceDraft errors."""


class ConfigurationError(VoiceDraftError):
    """Missing or invalid configuration."""


class TransportError(VoiceDraftError):
    """Network call failed before a usable response arrived."""


class ProtocolError(VoiceDraftError):
    """Response arrived but had an unexpected shape."""


class DeviceError(VoiceDraftError):
    """Audio input device could not be used."""


class FormatError(VoiceDraftError):
    """Audio data could not be encoded."""


class StateError(VoiceDraftError):
    """Operation is not valid in the current recording state."""


class UnsupportedFormatError(DeviceError):
    """Input device delivers a sample format we cannot consume."""


class ThreadTimeoutError(DeviceError):
    """Capture worker did not report readiness in time."""


class ProviderError(VoiceDraftError):
    """Common base of errors raised by speech and LLM backends."""


class RequestFailedError(ProviderError, TransportError):
    """Request failed or the backend answered with a non-2xx status."""

    def __init__(self, detail: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(f"API request failed: {detail}")
        self.detail = detail
        self.status = status
        self.body = body


class ApiKeyMissingError(ProviderError, ConfigurationError):
    """Credential needed by a backend is not available."""

    def __init__(self, which: str):
        super().__init__(f"API key not found: {which}")
        self.which = which


class ResponseParseError(ProviderError, ProtocolError):
    """Backend response could not be parsed."""

    def __init__(self, detail: str):
        super().__init__(f"Failed to parse response: {detail}")
        self.detail = detail


class ProviderTimeoutError(ProviderError, TransportError):
    """Backend call exceeded the fixed request timeout."""

    def __init__(self, detail: str = "Request timed out"):
        super().__init__(detail)


class StreamError(ProviderError, TransportError):
    """Streaming response broke off after it had started."""

    def __init__(self, detail: str):
        super().__init__(f"Stream error: {detail}")
        self.detail = detail
