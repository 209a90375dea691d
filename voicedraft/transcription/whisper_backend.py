"""OpenAI Whisper transcription backend."""

import json
import os
import asyncio
import logging
from typing import Mapping, Optional

import aiohttp

from .base import AbstractSpeechBackend
from ..exceptions import ApiKeyMissingError, ProviderTimeoutError, RequestFailedError, ResponseParseError
from ..models.transcription import TranscriptionResult
from ..net import DEFAULT_TIMEOUT_SECONDS, raise_for_status

logger = logging.getLogger(__name__)

WHISPER_API_URL = "https://api.openai.com/v1/audio/transcriptions"
WHISPER_MODEL = "whisper-1"


class WhisperApiBackend(AbstractSpeechBackend):
    """Whisper API backend; uploads WAV audio as multipart form data."""

    service_name = "OpenAI Whisper"

    def __init__(self, api_key: str, language: str = "en",
                 session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = DEFAULT_TIMEOUT_SECONDS):
        """Initialize Whisper backend.

        Args:
            api_key: OpenAI API key
            language: ISO-639-1 language code (e.g. 'en', 'ja')
            session: Shared aiohttp session; a short-lived one is created per call if None
            timeout: Total per-call timeout in seconds
        """
        super().__init__(language)
        self.api_key = api_key
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.base_url = WHISPER_API_URL

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, str]] = None, **kwargs) -> "WhisperApiBackend":
        """Build from OPENAI_API_KEY in settings (defaults to the environment)."""
        settings = os.environ if settings is None else settings
        api_key = settings.get("OPENAI_API_KEY")
        if not api_key:
            raise ApiKeyMissingError("OPENAI_API_KEY")
        return cls(api_key, **kwargs)

    def _build_form(self, audio_wav: bytes, language: str) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field("file", audio_wav, filename="audio.wav", content_type="audio/wav")
        form.add_field("model", WHISPER_MODEL)
        form.add_field("language", language)
        return form

    async def transcribe(self, audio_wav: bytes, language: Optional[str] = None) -> TranscriptionResult:
        """Transcribe WAV audio with the Whisper API."""
        language = language or self.language
        logger.debug(f"Whisper request: {len(audio_wav)} bytes; language={language}")
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self.session is not None:
                raw = await self._post(self.session, headers, audio_wav, language)
            else:
                async with aiohttp.ClientSession(timeout=self.timeout) as session:
                    raw = await self._post(session, headers, audio_wav, language)
        except asyncio.TimeoutError as e:
            logger.error("Whisper request timed out")
            raise ProviderTimeoutError() from e
        except aiohttp.ClientError as e:
            logger.error(f"Whisper request failed: {e}")
            raise RequestFailedError(str(e)) from e

        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResponseParseError(str(e)) from e
        if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
            raise ResponseParseError("Whisper response has no 'text' field")

        logger.debug(f"Whisper transcript: '{payload['text'][:50]}'")
        # Whisper reports no confidence score
        return TranscriptionResult(
            text=payload["text"],
            confidence=1.0,
            is_final=True,
            service=self.service_name,
            language=language,
        )

    async def _post(self, session: aiohttp.ClientSession, headers, audio_wav: bytes, language: str) -> bytes:
        async with session.post(self.base_url, headers=headers,
                                data=self._build_form(audio_wav, language),
                                timeout=self.timeout) as response:
            await raise_for_status(response)
            return await response.read()
