"""Generation metrics and aggregate pipeline statistics."""

from dataclasses import dataclass


@dataclass
class GenerationMetrics:
    """Process-lifetime generation counters.

    Only reset explicitly, when the whole cache is cleared.
    """

    total_generations: int = 0
    successful_generations: int = 0
    failed_generations: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    total_generation_time: float = 0.0

    @property
    def cache_hit_rate(self) -> float:
        requests = self.cache_hits + self.cache_misses
        if requests == 0:
            return 0.0
        return self.cache_hits / requests

    @property
    def average_generation_time(self) -> float:
        if self.successful_generations == 0:
            return 0.0
        return self.total_generation_time / self.successful_generations

    def record_success(self, duration: float) -> None:
        self.total_generations += 1
        self.successful_generations += 1
        self.total_generation_time += duration

    def record_failure(self) -> None:
        self.total_generations += 1
        self.failed_generations += 1

    def record_cache_hit(self) -> None:
        self.cache_hits += 1

    def record_cache_miss(self) -> None:
        self.cache_misses += 1

    def reset(self) -> None:
        self.total_generations = 0
        self.successful_generations = 0
        self.failed_generations = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.total_generation_time = 0.0


@dataclass(frozen=True)
class PipelineStatistics:
    """Generation metrics merged with a cache statistics snapshot."""

    total_generations: int
    cache_hit_rate: float
    average_generation_time: float
    total_cached_items: int
    total_cache_size: str
    total_cache_size_mb: float
    successful_generations: int
    failed_generations: int

    @property
    def success_rate(self) -> float:
        if self.total_generations == 0:
            return 0.0
        return self.successful_generations / self.total_generations
