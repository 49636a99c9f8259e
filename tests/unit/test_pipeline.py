"""Unit tests for AudioPipeline orchestration."""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from test_helpers import FakeScriptProvider, FakeTTSProvider, failing_tts
from wakeclip.cache.manager import AudioCacheManager
from wakeclip.errors import InvalidInputError, PipelineError, ProviderAPIError
from wakeclip.tts.models import (
    DEFAULT_GOAL,
    TONE_VOICE_SETTINGS,
    TONE_VOICES,
    AlarmTone,
    GenerationRequest,
    GenerationStatus,
)
from wakeclip.tts.pipeline import AudioPipeline, estimate_duration


def make_request(
    request_id: str = "alarm-1",
    goal: str = "Finish the quarterly report",
    tone: AlarmTone = AlarmTone.GENTLE,
    in_hours: float = 8.0,
    **kwargs,
) -> GenerationRequest:
    return GenerationRequest(
        request_id=request_id,
        user_goal=goal,
        tone=tone,
        scheduled_for=datetime.now() + timedelta(hours=in_hours),
        **kwargs,
    )


def make_pipeline(cache_dir: Path, script=None, tts=None, **kwargs) -> AudioPipeline:
    return AudioPipeline(
        script_provider=script or FakeScriptProvider(),
        tts_provider=tts or FakeTTSProvider(),
        cache=AudioCacheManager(cache_dir),
        **kwargs,
    )


class TestCacheFirstLookup:
    """Test that cached audio short-circuits both providers."""

    @pytest.mark.asyncio
    async def test_second_request_served_from_cache(self, cache_dir: Path) -> None:
        """Test that providers run once for two identical requests."""
        script, tts = FakeScriptProvider(), FakeTTSProvider()
        pipeline = make_pipeline(cache_dir, script, tts)
        request = make_request()

        first = await pipeline.get_or_generate(request)
        second = await pipeline.get_or_generate(request)

        assert len(script.calls) == 1
        assert len(tts.calls) == 1
        assert first.from_cache is False
        assert second.from_cache is True
        assert second.audio_path == first.audio_path
        assert second.text_content == first.text_content
        assert pipeline.metrics.cache_hits == 1
        assert pipeline.metrics.cache_misses == 1

    @pytest.mark.asyncio
    async def test_generated_result_fields(self, cache_dir: Path) -> None:
        """Test the result of a fresh generation."""
        tts = FakeTTSProvider(size=32000)
        pipeline = make_pipeline(cache_dir, tts=tts)
        request = make_request(tone=AlarmTone.ENERGETIC)

        result = await pipeline.get_or_generate(request)

        assert Path(result.audio_path).exists()
        assert result.text_content == "Rise and shine. Today you ship it."
        assert result.voice_id == TONE_VOICES[AlarmTone.ENERGETIC]
        assert result.duration == 2.0
        assert tts.calls[0] == (
            "Rise and shine. Today you ship it.",
            TONE_VOICES[AlarmTone.ENERGETIC],
            TONE_VOICE_SETTINGS[AlarmTone.ENERGETIC],
        )
        assert pipeline.status is GenerationStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_script_context_includes_schedule_and_custom_entries(
        self, cache_dir: Path
    ) -> None:
        """Test the context passed to the script provider."""
        script = FakeScriptProvider()
        pipeline = make_pipeline(cache_dir, script=script)
        request = make_request(context={"weather": "rainy"})

        await pipeline.get_or_generate(request)

        goal, tone, context = script.calls[0]
        assert goal == "Finish the quarterly report"
        assert tone == "gentle"
        assert context["weather"] == "rainy"
        assert context["day_of_week"] == request.scheduled_for.strftime("%A")
        assert context["target_time"] == request.scheduled_for.strftime("%H:%M")


class TestFailureIsolation:
    """Test that a failing stage leaves no partial state behind."""

    @pytest.mark.asyncio
    async def test_speech_failure_leaves_cache_untouched(self, cache_dir: Path) -> None:
        """Test that a synthesis failure reports the stage and caches nothing."""
        pipeline = make_pipeline(cache_dir, tts=failing_tts())

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.get_or_generate(make_request())

        assert exc_info.value.stage == "speech"
        assert isinstance(exc_info.value.original_error, ProviderAPIError)
        assert "503 service unavailable" in str(exc_info.value)
        assert (await pipeline.cache.statistics()).total_items == 0
        assert pipeline.metrics.failed_generations == 1
        assert pipeline.metrics.total_generations == 1
        assert pipeline.status is GenerationStatus.FAILED
        assert pipeline.last_error is exc_info.value.original_error

    @pytest.mark.asyncio
    async def test_text_failure_skips_synthesis(self, cache_dir: Path) -> None:
        """Test that a text failure never reaches the speech provider."""
        tts = FakeTTSProvider()
        script = FakeScriptProvider(error=ProviderAPIError("Rate limit exceeded", 429))
        pipeline = make_pipeline(cache_dir, script=script, tts=tts)

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.get_or_generate(make_request())

        assert exc_info.value.stage == "text"
        assert tts.calls == []

    @pytest.mark.asyncio
    async def test_cache_failure_reports_cache_stage(self, cache_dir: Path) -> None:
        """Test that empty synthesized audio fails in the cache stage."""
        pipeline = make_pipeline(cache_dir, tts=FakeTTSProvider(size=0))

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.get_or_generate(make_request())

        assert exc_info.value.stage == "cache"
        assert isinstance(exc_info.value.original_error, InvalidInputError)

    @pytest.mark.asyncio
    async def test_failure_is_not_retried(self, cache_dir: Path) -> None:
        """Test that each failed request calls the provider exactly once."""
        tts = failing_tts()
        pipeline = make_pipeline(cache_dir, tts=tts)

        with pytest.raises(PipelineError):
            await pipeline.get_or_generate(make_request())

        assert len(tts.calls) == 1


class TestStatusReporting:
    """Test status transitions and listeners."""

    @pytest.mark.asyncio
    async def test_listener_sees_stages_in_order(self, cache_dir: Path) -> None:
        """Test the status sequence of a successful generation."""
        pipeline = make_pipeline(cache_dir)
        seen = []
        pipeline.add_status_listener(lambda status, error: seen.append(status))

        await pipeline.get_or_generate(make_request())

        assert seen == [
            GenerationStatus.GENERATING_TEXT,
            GenerationStatus.SYNTHESIZING_SPEECH,
            GenerationStatus.CACHING,
            GenerationStatus.COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_generation(
        self, cache_dir: Path
    ) -> None:
        """Test that a raising listener is ignored."""
        pipeline = make_pipeline(cache_dir)

        def broken(status, error):
            raise RuntimeError("listener bug")

        pipeline.add_status_listener(broken)
        result = await pipeline.get_or_generate(make_request())

        assert result.from_cache is False

    @pytest.mark.asyncio
    async def test_cache_hit_leaves_status_unchanged(self, cache_dir: Path) -> None:
        """Test that a hit does not move through generation states."""
        pipeline = make_pipeline(cache_dir)
        request = make_request()
        await pipeline.get_or_generate(request)
        seen = []
        pipeline.add_status_listener(lambda status, error: seen.append(status))

        await pipeline.get_or_generate(request)

        assert seen == []


class TestPreGeneration:
    """Test the 24-hour pre-generation window."""

    @pytest.mark.asyncio
    async def test_beyond_window_is_skipped(self, cache_dir: Path) -> None:
        """Test that a request 30 hours out is not generated."""
        script = FakeScriptProvider()
        pipeline = make_pipeline(cache_dir, script=script)

        assert await pipeline.pre_generate(make_request(in_hours=30)) is None
        assert script.calls == []
        assert (await pipeline.cache.statistics()).total_items == 0

    @pytest.mark.asyncio
    async def test_past_request_is_skipped(self, cache_dir: Path) -> None:
        """Test that a request already due is not generated."""
        script = FakeScriptProvider()
        pipeline = make_pipeline(cache_dir, script=script)

        assert await pipeline.pre_generate(make_request(in_hours=-1)) is None
        assert script.calls == []

    @pytest.mark.asyncio
    async def test_within_window_warms_cache(self, cache_dir: Path) -> None:
        """Test that a request 2 hours out is generated and later hits."""
        pipeline = make_pipeline(cache_dir)
        request = make_request(in_hours=2)

        warmed = await pipeline.pre_generate(request)
        served = await pipeline.get_or_generate(request)

        assert warmed is not None
        assert warmed.from_cache is False
        assert served.from_cache is True

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, cache_dir: Path) -> None:
        """Test that pre-generation failures return None instead of raising."""
        pipeline = make_pipeline(cache_dir, tts=failing_tts())

        assert await pipeline.pre_generate(make_request(in_hours=2)) is None
        assert pipeline.metrics.failed_generations == 1


class TestCacheKey:
    """Test cache key derivation."""

    def test_key_is_deterministic(self, cache_dir: Path) -> None:
        """Test that equal requests map to the same key."""
        pipeline = make_pipeline(cache_dir)

        assert pipeline.cache_key(make_request()) == pipeline.cache_key(make_request())

    def test_key_starts_with_request_tone_and_voice(self, cache_dir: Path) -> None:
        """Test the readable prefix of the key."""
        pipeline = make_pipeline(cache_dir)

        key = pipeline.cache_key(make_request(request_id="Alarm-7", tone=AlarmTone.TOUGH_LOVE))

        assert key.startswith(f"Alarm-7_tough_love_{TONE_VOICES[AlarmTone.TOUGH_LOVE]}_")
        assert len(key.rsplit("_", 1)[1]) == 16

    def test_request_ids_differing_in_case_get_distinct_keys(self, cache_dir: Path) -> None:
        """Test that request IDs are case-sensitive in the key."""
        pipeline = make_pipeline(cache_dir)

        assert pipeline.cache_key(make_request(request_id="Alarm-7")) != pipeline.cache_key(
            make_request(request_id="alarm-7")
        )

    @pytest.mark.asyncio
    async def test_case_distinct_requests_keep_separate_clips(self, cache_dir: Path) -> None:
        """Test that two requests whose IDs differ only in case both generate."""
        tts = FakeTTSProvider()
        pipeline = make_pipeline(cache_dir, tts=tts)

        first = await pipeline.get_or_generate(make_request(request_id="Alarm-7"))
        second = await pipeline.get_or_generate(make_request(request_id="alarm-7"))

        assert second.from_cache is False
        assert first.audio_path != second.audio_path
        assert len(tts.calls) == 2

    def test_goal_normalization(self, cache_dir: Path) -> None:
        """Test that case and whitespace differences in the goal share a key."""
        pipeline = make_pipeline(cache_dir)

        assert pipeline.cache_key(make_request(goal="Run  the Marathon")) == pipeline.cache_key(
            make_request(goal="run the marathon ")
        )

    def test_long_goals_with_shared_prefix_differ(self, cache_dir: Path) -> None:
        """Test that goals differing after 50 characters get different keys."""
        pipeline = make_pipeline(cache_dir)
        prefix = "Prepare the slides for the board meeting and then also "

        first = pipeline.cache_key(make_request(goal=prefix + "call the bank"))
        second = pipeline.cache_key(make_request(goal=prefix + "walk the dog"))

        assert first != second

    def test_context_changes_key(self, cache_dir: Path) -> None:
        """Test that custom context is part of the key."""
        pipeline = make_pipeline(cache_dir)

        assert pipeline.cache_key(make_request(context={"weather": "sunny"})) != pipeline.cache_key(
            make_request(context={"weather": "rainy"})
        )

    def test_schedule_time_does_not_change_key(self, cache_dir: Path) -> None:
        """Test that the same request scheduled at another time reuses audio."""
        pipeline = make_pipeline(cache_dir)

        assert pipeline.cache_key(make_request(in_hours=1)) == pipeline.cache_key(
            make_request(in_hours=20)
        )


class TestVoiceSelection:
    """Test voice resolution."""

    def test_override_replaces_tone_voice(self, cache_dir: Path) -> None:
        """Test configured per-tone voice overrides."""
        pipeline = make_pipeline(cache_dir, voice_overrides={AlarmTone.GENTLE: "custom"})

        assert pipeline.voice_for(make_request()) == "custom"
        assert pipeline.voice_for(make_request(tone=AlarmTone.ENERGETIC)) == TONE_VOICES[
            AlarmTone.ENERGETIC
        ]

    def test_request_voice_wins(self, cache_dir: Path) -> None:
        """Test that an explicit request voice beats the tone default."""
        pipeline = make_pipeline(cache_dir)

        assert pipeline.voice_for(make_request(voice_id="explicit")) == "explicit"


class TestPipelineMaintenance:
    """Test statistics and cache passthrough operations."""

    @pytest.mark.asyncio
    async def test_statistics_merge_metrics_and_cache(self, cache_dir: Path) -> None:
        """Test aggregate statistics after a miss and a hit."""
        pipeline = make_pipeline(cache_dir)
        request = make_request()
        await pipeline.get_or_generate(request)
        await pipeline.get_or_generate(request)

        stats = await pipeline.statistics()

        assert stats.total_generations == 1
        assert stats.successful_generations == 1
        assert stats.cache_hit_rate == 0.5
        assert stats.total_cached_items == 1
        assert stats.total_cache_size == "31.2 KB"
        assert stats.success_rate == 1.0

    @pytest.mark.asyncio
    async def test_clear_cache_resets_metrics(self, cache_dir: Path) -> None:
        """Test that clearing the cache also zeroes metrics."""
        pipeline = make_pipeline(cache_dir)
        await pipeline.get_or_generate(make_request())

        await pipeline.clear_cache()
        stats = await pipeline.statistics()

        assert stats.total_generations == 0
        assert stats.total_cached_items == 0
        assert pipeline.status is GenerationStatus.IDLE

    @pytest.mark.asyncio
    async def test_clear_expired_runs_maintenance(self, cache_dir: Path) -> None:
        """Test that clear_expired delegates to cache maintenance."""
        pipeline = make_pipeline(cache_dir)
        pipeline.cache.maintain = AsyncMock()

        await pipeline.clear_expired()

        pipeline.cache.maintain.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_closes_both_providers(self, cache_dir: Path) -> None:
        """Test that close releases the script and speech providers."""
        script, tts = FakeScriptProvider(), FakeTTSProvider()
        pipeline = make_pipeline(cache_dir, script, tts)

        await pipeline.close()

        assert script.closed
        assert tts.closed

    @pytest.mark.asyncio
    async def test_close_reaches_speech_provider_when_script_close_fails(
        self, cache_dir: Path
    ) -> None:
        """Test that a failing script provider close still closes the speech provider."""
        script, tts = FakeScriptProvider(), FakeTTSProvider()
        script.aclose = AsyncMock(side_effect=RuntimeError("already closed"))
        pipeline = make_pipeline(cache_dir, script, tts)

        with pytest.raises(RuntimeError, match="already closed"):
            await pipeline.close()

        assert tts.closed


class TestRequestHelpers:
    """Test request construction helpers."""

    def test_default_request_for_schedule(self) -> None:
        """Test the fallback request used when no goal is given."""
        when = datetime(2025, 1, 6, 7, 0)

        request = GenerationRequest.default_for("schedule-9", when)

        assert request.request_id == "schedule-9"
        assert request.user_goal == DEFAULT_GOAL
        assert request.tone is AlarmTone.GENTLE
        assert request.scheduled_for == when

    def test_estimate_duration(self) -> None:
        """Test the 128 kbps size to duration estimate."""
        assert estimate_duration(b"\x00" * 16000) == 1.0
