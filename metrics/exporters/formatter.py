"""Prometheus text exposition of metric snapshots

Each metric renders as a HELP/TYPE header followed by one sample line per
aggregate, all sharing the same key::

    # HELP db_reads metric
    # TYPE db_reads gauage
    db_reads{mtype="gauage",aggr="value"} 42
"""
import threading
from typing import Any, Callable, Dict, List
from metrics.models import (
    MetricType,
    CounterSnapshot,
    GaugeSnapshot,
    GaugeFloat64Snapshot,
    HistogramSnapshot,
    MeterSnapshot,
    TimerSnapshot,
    ResettingTimerSnapshot,
)
from logging_config import get_logger


logger = get_logger(__name__)

HEADER_TEMPLATE = "# HELP {key} metric\n# TYPE {key} {mtype}\n"
LINE_TEMPLATE = '{key}{{mtype="{mtype}",aggr="{tag}"}} {value}\n'

SAMPLE_PERCENTILES = (0.5, 0.75, 0.95, 0.99, 0.999, 0.9999)
SAMPLE_PERCENTILE_TAGS = ("p50", "p75", "p95", "p99", "p999", "p9999")
RESETTING_PERCENTILES = (50, 95, 99)
RESETTING_PERCENTILE_TAGS = ("p50", "p95", "p99")


class MetricKey:
    """Exposition name, declared type and prebuilt header of one metric"""

    __slots__ = ("key", "mtype", "_header")

    def __init__(self, name: str, mtype: MetricType):
        self.key = self.sanitize(name)
        self.mtype = mtype
        self._header = HEADER_TEMPLATE.format(key=self.key, mtype=mtype.value).encode()

    @staticmethod
    def sanitize(name: str) -> str:
        """Replace every '/' in a registry name with '_'"""
        return name.replace("/", "_")

    def header(self) -> bytes:
        return self._header

    def line(self, tag: str, value: Any) -> bytes:
        """One sample line; value is written with its default str() form"""
        return LINE_TEMPLATE.format(key=self.key, mtype=self.mtype.value, tag=tag, value=value).encode()

    def __repr__(self) -> str:
        return f"MetricKey(key={self.key!r}, mtype={self.mtype.value!r})"


class HeaderCache:
    """Registry name to MetricKey mapping shared by concurrent scrapes

    Lookups of cached names take no lock. A miss takes the write lock and
    looks again before building, so each name is built exactly once. The
    declared type of the first resolve wins for the life of the cache.
    """

    def __init__(self, key_factory: Callable[[str, MetricType], MetricKey] = MetricKey):
        self._key_factory = key_factory
        self._keys: Dict[str, MetricKey] = {}
        self._lock = threading.Lock()

    def resolve(self, name: str, mtype: MetricType) -> MetricKey:
        key = self._keys.get(name)
        if key is not None:
            return key

        with self._lock:
            key = self._keys.get(name)
            if key is None:
                key = self._key_factory(name, mtype)
                self._keys[name] = key
                logger.debug("Cached metric header", metric=name, key=key.key, mtype=key.mtype.value)
            return key

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, name: str) -> bool:
        return name in self._keys


class PrometheusFormatter:
    """Appends the exposition lines of one snapshot to a chunk list"""

    def __init__(self, cache: HeaderCache, gauge_type: MetricType = MetricType.GAUAGE):
        self.cache = cache
        self.gauge_type = gauge_type

    def counter(self, buf: List[bytes], name: str, m: CounterSnapshot) -> None:
        pm = self.cache.resolve(name, self.gauge_type)
        buf.append(pm.header())
        buf.append(pm.line("value", m.count))

    def gauge(self, buf: List[bytes], name: str, m: GaugeSnapshot) -> None:
        pm = self.cache.resolve(name, self.gauge_type)
        buf.append(pm.header())
        buf.append(pm.line("value", m.value))

    def gauge_float64(self, buf: List[bytes], name: str, m: GaugeFloat64Snapshot) -> None:
        pm = self.cache.resolve(name, self.gauge_type)
        buf.append(pm.header())
        buf.append(pm.line("value", m.value))

    def histogram(self, buf: List[bytes], name: str, m: HistogramSnapshot) -> None:
        pm = self.cache.resolve(name, MetricType.SUMMARY)
        buf.append(pm.header())
        self._distribution(buf, pm, m)

    def meter(self, buf: List[bytes], name: str, m: MeterSnapshot) -> None:
        pm = self.cache.resolve(name, self.gauge_type)
        buf.append(pm.header())
        buf.append(pm.line("count", m.count))
        buf.append(pm.line("m1", m.rate1))
        buf.append(pm.line("m5", m.rate5))
        buf.append(pm.line("m15", m.rate15))
        buf.append(pm.line("mean", m.rate_mean))

    def timer(self, buf: List[bytes], name: str, m: TimerSnapshot) -> None:
        pm = self.cache.resolve(name, MetricType.SUMMARY)
        buf.append(pm.header())
        self._distribution(buf, pm, m)
        buf.append(pm.line("m1", m.rate1))
        buf.append(pm.line("m5", m.rate5))
        buf.append(pm.line("m15", m.rate15))
        buf.append(pm.line("meanrate", m.rate_mean))

    def resetting_timer(self, buf: List[bytes], name: str, m: ResettingTimerSnapshot) -> None:
        # Nothing was recorded since the last scrape
        if not m.values:
            return

        ps = m.percentiles(RESETTING_PERCENTILES)
        values = m.values
        pm = self.cache.resolve(name, MetricType.SUMMARY)
        buf.append(pm.header())
        buf.append(pm.line("count", len(values)))
        buf.append(pm.line("max", values[-1]))
        buf.append(pm.line("mean", m.mean))
        buf.append(pm.line("min", values[0]))
        for i, tag in enumerate(RESETTING_PERCENTILE_TAGS):
            buf.append(pm.line(tag, ps[i]))

    def _distribution(self, buf: List[bytes], pm: MetricKey, m: Any) -> None:
        """Count, extremes, moments and the six sample percentiles"""
        ps = m.percentiles(SAMPLE_PERCENTILES)
        buf.append(pm.line("count", m.count))
        buf.append(pm.line("max", m.max))
        buf.append(pm.line("mean", m.mean))
        buf.append(pm.line("min", m.min))
        buf.append(pm.line("stddev", m.stddev))
        buf.append(pm.line("variance", m.variance))
        for i, tag in enumerate(SAMPLE_PERCENTILE_TAGS):
            buf.append(pm.line(tag, ps[i]))
