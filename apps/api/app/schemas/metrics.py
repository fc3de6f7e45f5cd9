from pydantic import BaseModel


class TimingMetricStats(BaseModel):
    count: int
    avg_s: float
    max_s: float


class RatingCodeUsage(BaseModel):
    """Live codes against the fixed letter+digit code space."""

    live: int
    capacity: int


class MetricsResponse(BaseModel):
    counters: dict[str, int]
    timings: dict[str, TimingMetricStats]
    rating_codes: RatingCodeUsage
