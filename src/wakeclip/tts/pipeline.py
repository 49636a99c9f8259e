"""Audio pipeline orchestrator for wakeclip.

Coordinates a ScriptProvider, a TTSProvider and the AudioCacheManager to turn
a GenerationRequest into cached audio: cache lookup first, then text
generation, speech synthesis and cache insertion, strictly in that order.
"""

import hashlib
import logging
import re
import time
from collections.abc import Callable
from datetime import datetime, timedelta

from ..cache.manager import AudioCacheManager
from ..cache.models import AudioMetadata
from ..errors import PipelineError
from ..providers.base import ScriptProvider, TTSProvider
from .metrics import GenerationMetrics, PipelineStatistics
from .models import (
    DEFAULT_VOICE_ID,
    TONE_VOICE_SETTINGS,
    TONE_VOICES,
    AlarmTone,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
)

logger = logging.getLogger(__name__)

PRE_GENERATION_HORIZON = timedelta(hours=24)

# 128 kbps MP3
MP3_BYTES_PER_SECOND = 128 * 1000 / 8

StatusListener = Callable[[GenerationStatus, Exception | None], None]


def estimate_duration(data: bytes) -> float:
    """Estimate clip length in seconds from its MP3 byte size."""
    return len(data) / MP3_BYTES_PER_SECOND


def _normalize(text: str) -> str:
    return re.sub(r"\s+", "_", text.strip().lower())


class AudioPipeline:
    """Orchestrates generation of spoken clips with cache-first lookup.

    Example:
        pipeline = AudioPipeline(
            script_provider=GrokScriptProvider(),
            tts_provider=ElevenLabsProvider(),
            cache=AudioCacheManager(),
        )

        result = await pipeline.get_or_generate(request)
        # result.from_cache is True when neither provider was called

    Status of the current generation is available from ``status`` and
    ``last_error``, and pushed to callbacks registered with
    ``add_status_listener``.
    """

    def __init__(
        self,
        script_provider: ScriptProvider,
        tts_provider: TTSProvider,
        cache: AudioCacheManager,
        voice_overrides: dict[AlarmTone, str] | None = None,
    ) -> None:
        """Initialize the pipeline with its collaborators.

        Args:
            script_provider: Text generator for the spoken script
            tts_provider: Speech synthesizer
            cache: Audio cache
            voice_overrides: Voice IDs replacing the default voice per tone
        """
        self.script_provider = script_provider
        self.tts_provider = tts_provider
        self.cache = cache
        self.voices = {**TONE_VOICES, **(voice_overrides or {})}

        self.metrics = GenerationMetrics()
        self._status = GenerationStatus.IDLE
        self._last_error: Exception | None = None
        self._listeners: list[StatusListener] = []

    @property
    def status(self) -> GenerationStatus:
        return self._status

    @property
    def last_error(self) -> Exception | None:
        """Error carried by the FAILED status, None otherwise."""
        return self._last_error

    def add_status_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def _set_status(
        self, status: GenerationStatus, error: Exception | None = None
    ) -> None:
        self._status = status
        self._last_error = error
        for listener in self._listeners:
            try:
                listener(status, error)
            except Exception as e:
                logger.warning(f"Status listener failed: {e}")

    def cache_key(self, request: GenerationRequest) -> str:
        """Derive the cache key for ``request``.

        The whole normalized prompt (goal plus custom context) is hashed, so
        long prompts sharing a prefix do not collide. Request and voice IDs
        are kept verbatim since they are case-sensitive identifiers.
        """
        prompt = _normalize(request.user_goal)
        for name, value in sorted(request.context.items()):
            prompt += f"|{name}={_normalize(value)}"
        digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]

        return f"{request.request_id}_{request.tone.value}_{self.voice_for(request)}_{digest}"

    def voice_for(self, request: GenerationRequest) -> str:
        return request.voice_id or self.voices.get(request.tone, DEFAULT_VOICE_ID)

    async def get_or_generate(self, request: GenerationRequest) -> GenerationResult:
        """Return cached audio for ``request``, generating it on a miss.

        Raises:
            PipelineError: If generation is needed and any stage fails
            StorageError: If the cache lookup cannot persist a stale-entry removal
        """
        key = self.cache_key(request)
        artifact = await self.cache.get(key)

        if artifact is not None:
            self.metrics.record_cache_hit()
            logger.debug(f"Serving '{key}' from cache")
            return GenerationResult(
                audio_path=str(artifact.audio_path),
                text_content=artifact.text or "",
                duration=artifact.duration,
                voice_id=artifact.voice_id,
                generated_at=artifact.created_at,
                from_cache=True,
            )

        self.metrics.record_cache_miss()
        return await self.generate_and_cache(request)

    async def generate_and_cache(self, request: GenerationRequest) -> GenerationResult:
        """Run text generation, speech synthesis and caching for ``request``.

        A failing stage aborts the rest; nothing from the aborted run is kept
        and nothing is retried.

        Raises:
            PipelineError: Wrapping the failure of the stage that failed
        """
        start = time.monotonic()
        voice_id = self.voice_for(request)
        stage = "text"

        try:
            self._set_status(GenerationStatus.GENERATING_TEXT)
            script = await self.script_provider.generate_script(
                request.user_goal, request.tone.value, self._build_context(request)
            )

            stage = "speech"
            self._set_status(GenerationStatus.SYNTHESIZING_SPEECH)
            audio = await self.tts_provider.synthesize(
                script, voice_id, TONE_VOICE_SETTINGS.get(request.tone)
            )

            stage = "cache"
            self._set_status(GenerationStatus.CACHING)
            duration = estimate_duration(audio)
            audio_path = await self.cache.put(
                audio,
                self.cache_key(request),
                AudioMetadata(
                    request_id=request.request_id,
                    voice_id=voice_id,
                    duration=duration,
                    format="mp3",
                    quality="high",
                    text=script,
                ),
            )
        except Exception as e:
            self.metrics.record_failure()
            self._set_status(GenerationStatus.FAILED, e)
            logger.error(
                f"Generation for request {request.request_id} failed during {stage} stage: {e}"
            )
            raise PipelineError(stage, e) from e

        elapsed = time.monotonic() - start
        self.metrics.record_success(elapsed)
        self._set_status(GenerationStatus.COMPLETED)
        logger.info(
            f"Generated clip for request {request.request_id} in {elapsed:.2f}s "
            f"({duration:.1f}s of audio)"
        )

        return GenerationResult(
            audio_path=str(audio_path),
            text_content=script,
            duration=duration,
            voice_id=voice_id,
            generated_at=datetime.now(),
            from_cache=False,
        )

    async def pre_generate(self, request: GenerationRequest) -> GenerationResult | None:
        """Warm the cache for a request scheduled within the next 24 hours.

        Requests in the past or beyond the horizon are ignored. Failures are
        logged and swallowed.

        Returns:
            The result, or None if skipped or failed
        """
        time_until = request.scheduled_for - datetime.now()
        if not timedelta(0) < time_until <= PRE_GENERATION_HORIZON:
            logger.debug(
                f"Skipping pre-generation for request {request.request_id}: "
                f"scheduled {request.scheduled_for} is outside the 24h window"
            )
            return None

        try:
            return await self.get_or_generate(request)
        except Exception as e:
            logger.warning(f"Failed to pre-generate audio for request {request.request_id}: {e}")
            return None

    async def clear_expired(self) -> None:
        await self.cache.maintain()

    async def clear_cache(self) -> None:
        """Empty the cache and reset generation metrics."""
        await self.cache.clear()
        self.metrics.reset()
        self._set_status(GenerationStatus.IDLE)

    async def close(self) -> None:
        """Close both providers. The cache needs no closing."""
        try:
            await self.script_provider.aclose()
        finally:
            await self.tts_provider.aclose()

    async def statistics(self) -> PipelineStatistics:
        cache_stats = await self.cache.statistics()
        return PipelineStatistics(
            total_generations=self.metrics.total_generations,
            cache_hit_rate=self.metrics.cache_hit_rate,
            average_generation_time=self.metrics.average_generation_time,
            total_cached_items=cache_stats.total_items,
            total_cache_size=cache_stats.formatted_total_size,
            total_cache_size_mb=cache_stats.total_size_mb,
            successful_generations=self.metrics.successful_generations,
            failed_generations=self.metrics.failed_generations,
        )

    def _build_context(self, request: GenerationRequest) -> dict[str, str]:
        now = datetime.now()
        context = {
            "current_time": now.strftime("%b %d, %Y %H:%M"),
            "day_of_week": request.scheduled_for.strftime("%A"),
            "target_time": request.scheduled_for.strftime("%H:%M"),
            "tone": request.tone.value,
            "user_goal": request.user_goal,
        }
        context.update(request.context)
        return context
