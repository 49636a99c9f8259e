"""ElevenLabs text-to-speech provider implementation."""

import asyncio
import os

from elevenlabs.client import ElevenLabs

from ..errors import ProviderAPIError, ProviderAuthError
from ..tts.models import VoiceSettings
from .base import TTSProvider

DEFAULT_MODEL_ID = "eleven_monolingual_v1"


def _translate_error(e: Exception, action: str) -> Exception:
    message = str(e)
    if "unauthorized" in message.lower() or "401" in message:
        return ProviderAuthError(f"Authentication failed: {e}", e)
    if "429" in message:
        return ProviderAPIError(f"Rate limit exceeded: {e}", 429, e)
    if message[:1] == "5":  # 5xx server errors
        return ProviderAPIError(f"Server error: {e}", None, e)
    return ProviderAPIError(f"{action} failed: {e}", None, e)


class ElevenLabsProvider(TTSProvider):
    """ElevenLabs TTS provider implementation.

    Provides methods to synthesize speech from text and list voices
    using the ElevenLabs API.
    """

    def __init__(
        self, api_key: str | None = None, model_id: str = DEFAULT_MODEL_ID
    ) -> None:
        """Initialize ElevenLabs provider.

        Args:
            api_key: ElevenLabs API key. If not provided, reads from
                    ELEVENLABS_API_KEY environment variable.
            model_id: ElevenLabs model ID to use

        Raises:
            ProviderAuthError: If API key is not provided or invalid.
        """
        self._api_key = api_key or os.getenv("ELEVENLABS_API_KEY")
        if not self._api_key:
            raise ProviderAuthError(
                "ElevenLabs API key not found. Set ELEVENLABS_API_KEY environment "
                "variable or provide api_key parameter."
            )

        try:
            self._client = ElevenLabs(api_key=self._api_key)
        except Exception as e:
            raise ProviderAuthError(
                f"Failed to initialize ElevenLabs client: {e}", e
            ) from e

        self.model_id = model_id
        self._voices_cache: list[dict] | None = None

    async def synthesize(
        self, text: str, voice: str, options: VoiceSettings | None = None
    ) -> bytes:
        """Convert text to speech audio bytes.

        Args:
            text: Text to convert to speech
            voice: Voice ID to use for synthesis
            options: Voice settings (defaults to VoiceSettings())

        Returns:
            Audio data as bytes (MP3 format)

        Raises:
            ProviderAPIError: If API call fails
            ProviderAuthError: If authentication fails
            ValueError: If text is empty
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        voice_settings = options or VoiceSettings()

        # Use first available voice if not specified
        if not voice:
            voices = await self.list_voices()
            if not voices:
                raise ProviderAPIError("No voices available")
            voice = voices[0]["id"]

        def _sync_convert() -> bytes:
            audio_generator = self._client.text_to_speech.convert(
                text=text.strip(),
                voice_id=voice,
                model_id=self.model_id,
                voice_settings=voice_settings.to_dict(),
            )
            return b"".join(audio_generator)

        try:
            # Run synchronous ElevenLabs client in thread to avoid blocking event loop
            audio_bytes = await asyncio.to_thread(_sync_convert)
        except Exception as e:
            raise _translate_error(e, "Speech synthesis") from e

        if not audio_bytes:
            raise ProviderAPIError("No audio data received from API")

        return audio_bytes

    async def list_voices(self) -> list[dict]:
        """Get list of available voices.

        Results are cached after first call to avoid repeated API requests.

        Returns:
            List of voice dictionaries with id, name, and provider fields

        Raises:
            ProviderAPIError: If API call fails
            ProviderAuthError: If authentication fails
        """
        if self._voices_cache is not None:
            return self._voices_cache

        def _sync_get_voices() -> list[dict]:
            response = self._client.voices.get_all()
            return [
                {"id": voice.voice_id, "name": voice.name, "provider": "elevenlabs"}
                for voice in response.voices
            ]

        try:
            voices = await asyncio.to_thread(_sync_get_voices)
        except Exception as e:
            raise _translate_error(e, "Listing voices") from e

        self._voices_cache = voices
        return voices
