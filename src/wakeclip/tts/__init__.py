"""Generation package for wakeclip.

This package holds the request and result models, generation metrics and the
AudioPipeline orchestrator (imported from wakeclip.tts.pipeline).
"""

from .metrics import GenerationMetrics, PipelineStatistics
from .models import (
    AlarmTone,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    VoiceSettings,
)

__all__ = [
    "AlarmTone",
    "GenerationMetrics",
    "GenerationRequest",
    "GenerationResult",
    "GenerationStatus",
    "PipelineStatistics",
    "VoiceSettings",
]
