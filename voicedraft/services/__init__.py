"""Services layer for VoiceDraft application logic."""

from .dictation_service import DictationService

__all__ = [
    "DictationService",
]
