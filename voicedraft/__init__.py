"""VoiceDraft: voice dictation with pluggable speech and LLM backends."""

__version__ = "0.1.0"
