"""Metric kinds, exposition types and immutable snapshots"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence, Tuple


class MetricKind(Enum):
    """Closed set of metric kinds the exporter knows how to render"""
    COUNTER = "counter"
    GAUGE = "gauge"
    GAUGE_FLOAT64 = "gauge_float64"
    HISTOGRAM = "histogram"
    METER = "meter"
    TIMER = "timer"
    RESETTING_TIMER = "resetting_timer"


class MetricType(Enum):
    """Declared Prometheus exposition types"""
    # Misspelled on the wire since the first release; scrapers match on it.
    GAUAGE = "gauage"
    GAUGE = "gauge"
    SUMMARY = "summary"


def sample_percentiles(values: Sequence[int], ps: Sequence[float]) -> Tuple[float, ...]:
    """Interpolated percentiles of a sample for fractional requests (0.5 = median)"""
    size = len(values)
    if not size:
        return tuple(0.0 for _ in ps)

    ordered = sorted(values)
    scores = []
    for p in ps:
        pos = p * (size + 1)
        if pos < 1.0:
            scores.append(float(ordered[0]))
        elif pos >= size:
            scores.append(float(ordered[-1]))
        else:
            lower = float(ordered[int(pos) - 1])
            upper = float(ordered[int(pos)])
            scores.append(lower + (pos - math.floor(pos)) * (upper - lower))
    return tuple(scores)


@dataclass(frozen=True)
class CounterSnapshot:
    count: int


@dataclass(frozen=True)
class GaugeSnapshot:
    value: int


@dataclass(frozen=True)
class GaugeFloat64Snapshot:
    value: float


@dataclass(frozen=True)
class HistogramSnapshot:
    """Total observation count plus the retained sample"""
    count: int
    values: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    @property
    def min(self) -> int:
        return min(self.values) if self.values else 0

    @property
    def max(self) -> int:
        return max(self.values) if self.values else 0

    @property
    def mean(self) -> float:
        if not self.values:
            return 0.0
        return sum(self.values) / len(self.values)

    @property
    def variance(self) -> float:
        if not self.values:
            return 0.0
        m = self.mean
        return sum((float(v) - m) ** 2 for v in self.values) / len(self.values)

    @property
    def stddev(self) -> float:
        return math.sqrt(self.variance)

    def percentiles(self, ps: Sequence[float]) -> Tuple[float, ...]:
        return sample_percentiles(self.values, ps)


@dataclass(frozen=True)
class MeterSnapshot:
    """Event count with 1, 5 and 15 minute moving rates and the lifetime mean rate"""
    count: int
    rate1: float = 0.0
    rate5: float = 0.0
    rate15: float = 0.0
    rate_mean: float = 0.0


@dataclass(frozen=True)
class TimerSnapshot:
    """Duration histogram and call-rate meter read together"""
    histogram: HistogramSnapshot
    meter: MeterSnapshot

    @property
    def count(self) -> int:
        return self.histogram.count

    @property
    def min(self) -> int:
        return self.histogram.min

    @property
    def max(self) -> int:
        return self.histogram.max

    @property
    def mean(self) -> float:
        return self.histogram.mean

    @property
    def stddev(self) -> float:
        return self.histogram.stddev

    @property
    def variance(self) -> float:
        return self.histogram.variance

    def percentiles(self, ps: Sequence[float]) -> Tuple[float, ...]:
        return self.histogram.percentiles(ps)

    @property
    def rate1(self) -> float:
        return self.meter.rate1

    @property
    def rate5(self) -> float:
        return self.meter.rate5

    @property
    def rate15(self) -> float:
        return self.meter.rate15

    @property
    def rate_mean(self) -> float:
        return self.meter.rate_mean


@dataclass(frozen=True)
class ResettingTimerSnapshot:
    """Values recorded since the previous read, kept sorted ascending"""
    values: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(sorted(self.values)))

    @property
    def mean(self) -> float:
        if not self.values:
            return 0.0
        return sum(self.values) / len(self.values)

    def percentiles(self, ps: Sequence[float]) -> Tuple[int, ...]:
        """Nearest-rank percentiles for requests on a 0-100 scale

        Negative requests count down from the top, so -10 means the 90th percentile.
        """
        count = len(self.values)
        if not count:
            return tuple(0 for _ in ps)

        boundaries = []
        for pct in ps:
            if count == 1:
                boundaries.append(self.values[0])
                continue
            absolute = pct if pct >= 0 else 100 + pct
            index = int(math.floor((absolute / 100.0) * count + 0.5))
            if pct >= 0 and index > 0:
                index -= 1
            boundaries.append(self.values[index])
        return tuple(boundaries)


@dataclass
class CallbackMetric:
    """Registry entry that reads its snapshot from a callable

    Lets an application publish values it tracks itself, e.g.
    ``CallbackMetric(MetricKind.GAUGE, lambda: GaugeSnapshot(queue.qsize()))``.
    """
    kind: MetricKind
    snapshot_fn: Callable[[], Any]

    def snapshot(self) -> Any:
        return self.snapshot_fn()
