"""Tests for Prometheus exposition formatting"""
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

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
from metrics.exporters.formatter import MetricKey, HeaderCache, PrometheusFormatter


SAMPLE = [2, 4, 4, 4, 5, 5, 7, 9]


def aggr_tags(body: bytes) -> list:
    """aggr label of every sample line, in order"""
    tags = []
    for line in body.decode().splitlines():
        if line.startswith("#"):
            continue
        tags.append(line.split('aggr="', 1)[1].split('"', 1)[0])
    return tags


class TestMetricKey:
    """Test key sanitization and line templates"""

    def test_sanitize_replaces_slashes(self):
        """Test every slash is replaced positionally"""
        assert MetricKey.sanitize("chain/head/block") == "chain_head_block"
        assert MetricKey.sanitize("/leading/") == "_leading_"
        assert MetricKey.sanitize("plain") == "plain"

    def test_sanitize_leaves_other_characters(self):
        """Test no other characters are touched"""
        assert MetricKey.sanitize("p2p/peers.count-x") == "p2p_peers.count-x"

    def test_header(self):
        """Test HELP and TYPE header block"""
        key = MetricKey("db/reads", MetricType.GAUAGE)

        assert key.key == "db_reads"
        assert key.header() == b"# HELP db_reads metric\n# TYPE db_reads gauage\n"

    def test_header_built_once(self):
        """Test the header is the same object on every call"""
        key = MetricKey("db/reads", MetricType.SUMMARY)

        assert key.header() is key.header()

    def test_line(self):
        """Test sample line template"""
        key = MetricKey("rpc/latency", MetricType.SUMMARY)

        assert key.line("p50", 4.5) == b'rpc_latency{mtype="summary",aggr="p50"} 4.5\n'
        assert key.line("count", 8) == b'rpc_latency{mtype="summary",aggr="count"} 8\n'


class TestHeaderCache:
    """Test header caching under concurrent access"""

    def setup_method(self):
        """Setup test fixtures"""
        self.constructed = Counter()
        self._count_lock = threading.Lock()

        def counting_factory(name, mtype):
            with self._count_lock:
                self.constructed[name] += 1
            # Widen the window for racing resolvers
            time.sleep(0.001)
            return MetricKey(name, mtype)

        self.cache = HeaderCache(key_factory=counting_factory)

    def test_resolve_caches(self):
        """Test repeated resolves return the same key"""
        first = self.cache.resolve("db/reads", MetricType.GAUAGE)
        second = self.cache.resolve("db/reads", MetricType.GAUAGE)

        assert first is second
        assert self.constructed["db/reads"] == 1
        assert "db/reads" in self.cache
        assert len(self.cache) == 1

    def test_concurrent_resolve_builds_once(self):
        """Test each name is built exactly once across threads"""
        names = [f"subsystem/metric{i}" for i in range(10)]
        barrier = threading.Barrier(16)

        def worker(_):
            barrier.wait()
            return [self.cache.resolve(name, MetricType.SUMMARY) for name in names * 20]

        with ThreadPoolExecutor(max_workers=16) as executor:
            results = list(executor.map(worker, range(16)))

        assert all(self.constructed[name] == 1 for name in names)
        assert len(self.cache) == len(names)
        for keys in results[1:]:
            assert all(a is b for a, b in zip(keys, results[0]))

    def test_first_declared_type_wins(self):
        """Test a later resolve with another type keeps the first type"""
        first = self.cache.resolve("mixed/use", MetricType.GAUAGE)
        second = self.cache.resolve("mixed/use", MetricType.SUMMARY)

        assert second is first
        assert second.mtype is MetricType.GAUAGE
        assert b"# TYPE mixed_use gauage\n" in second.header()


class TestPrometheusFormatter:
    """Test the per-kind renderers"""

    def setup_method(self):
        """Setup test fixtures"""
        self.cache = HeaderCache()
        self.formatter = PrometheusFormatter(self.cache)
        self.buf = []

    def body(self) -> bytes:
        return b"".join(self.buf)

    def test_counter(self):
        """Test counter rendering"""
        self.formatter.counter(self.buf, "db/reads", CounterSnapshot(42))

        assert self.body() == (
            b"# HELP db_reads metric\n"
            b"# TYPE db_reads gauage\n"
            b'db_reads{mtype="gauage",aggr="value"} 42\n'
        )

    def test_gauge(self):
        """Test gauge rendering"""
        self.formatter.gauge(self.buf, "txpool/pending", GaugeSnapshot(-3))

        assert self.body() == (
            b"# HELP txpool_pending metric\n"
            b"# TYPE txpool_pending gauage\n"
            b'txpool_pending{mtype="gauage",aggr="value"} -3\n'
        )

    def test_gauge_float64(self):
        """Test float gauge rendering"""
        self.formatter.gauge_float64(self.buf, "system/cpu/load", GaugeFloat64Snapshot(0.5))

        assert self.body().endswith(b'system_cpu_load{mtype="gauage",aggr="value"} 0.5\n')

    def test_corrected_gauge_type(self):
        """Test gauge-class metrics with the corrected type tag"""
        formatter = PrometheusFormatter(HeaderCache(), MetricType.GAUGE)
        formatter.counter(self.buf, "db/reads", CounterSnapshot(1))

        assert self.body() == (
            b"# HELP db_reads metric\n"
            b"# TYPE db_reads gauge\n"
            b'db_reads{mtype="gauge",aggr="value"} 1\n'
        )

    def test_histogram(self):
        """Test histogram rendering"""
        self.formatter.histogram(self.buf, "rpc/latency", HistogramSnapshot(count=8, values=SAMPLE))

        assert self.body() == (
            b"# HELP rpc_latency metric\n"
            b"# TYPE rpc_latency summary\n"
            b'rpc_latency{mtype="summary",aggr="count"} 8\n'
            b'rpc_latency{mtype="summary",aggr="max"} 9\n'
            b'rpc_latency{mtype="summary",aggr="mean"} 5.0\n'
            b'rpc_latency{mtype="summary",aggr="min"} 2\n'
            b'rpc_latency{mtype="summary",aggr="stddev"} 2.0\n'
            b'rpc_latency{mtype="summary",aggr="variance"} 4.0\n'
            b'rpc_latency{mtype="summary",aggr="p50"} 4.5\n'
            b'rpc_latency{mtype="summary",aggr="p75"} 6.5\n'
            b'rpc_latency{mtype="summary",aggr="p95"} 9.0\n'
            b'rpc_latency{mtype="summary",aggr="p99"} 9.0\n'
            b'rpc_latency{mtype="summary",aggr="p999"} 9.0\n'
            b'rpc_latency{mtype="summary",aggr="p9999"} 9.0\n'
        )

    def test_empty_histogram(self):
        """Test an empty histogram still renders every line"""
        self.formatter.histogram(self.buf, "rpc/idle", HistogramSnapshot(count=0))

        assert aggr_tags(self.body()) == [
            "count", "max", "mean", "min", "stddev", "variance",
            "p50", "p75", "p95", "p99", "p999", "p9999"
        ]
        assert b'rpc_idle{mtype="summary",aggr="p50"} 0.0\n' in self.body()

    def test_meter(self):
        """Test meter rendering"""
        snapshot = MeterSnapshot(count=10, rate1=1.5, rate5=0.5, rate15=0.25, rate_mean=2.0)
        self.formatter.meter(self.buf, "p2p/ingress", snapshot)

        assert self.body() == (
            b"# HELP p2p_ingress metric\n"
            b"# TYPE p2p_ingress gauage\n"
            b'p2p_ingress{mtype="gauage",aggr="count"} 10\n'
            b'p2p_ingress{mtype="gauage",aggr="m1"} 1.5\n'
            b'p2p_ingress{mtype="gauage",aggr="m5"} 0.5\n'
            b'p2p_ingress{mtype="gauage",aggr="m15"} 0.25\n'
            b'p2p_ingress{mtype="gauage",aggr="mean"} 2.0\n'
        )

    def test_timer(self):
        """Test timer rendering"""
        snapshot = TimerSnapshot(
            histogram=HistogramSnapshot(count=8, values=SAMPLE),
            meter=MeterSnapshot(count=8, rate1=1.5, rate5=0.5, rate15=0.25, rate_mean=2.0)
        )
        self.formatter.timer(self.buf, "chain/inserts", snapshot)

        body = self.body()
        assert body.startswith(b"# HELP chain_inserts metric\n# TYPE chain_inserts summary\n")
        assert aggr_tags(body) == [
            "count", "max", "mean", "min", "stddev", "variance",
            "p50", "p75", "p95", "p99", "p999", "p9999",
            "m1", "m5", "m15", "meanrate"
        ]
        assert body.endswith(
            b'chain_inserts{mtype="summary",aggr="p9999"} 9.0\n'
            b'chain_inserts{mtype="summary",aggr="m1"} 1.5\n'
            b'chain_inserts{mtype="summary",aggr="m5"} 0.5\n'
            b'chain_inserts{mtype="summary",aggr="m15"} 0.25\n'
            b'chain_inserts{mtype="summary",aggr="meanrate"} 2.0\n'
        )

    def test_resetting_timer(self):
        """Test resetting timer rendering"""
        self.formatter.resetting_timer(self.buf, "rpc/duration", ResettingTimerSnapshot(values=[1, 2, 2, 5, 9]))

        assert self.body() == (
            b"# HELP rpc_duration metric\n"
            b"# TYPE rpc_duration summary\n"
            b'rpc_duration{mtype="summary",aggr="count"} 5\n'
            b'rpc_duration{mtype="summary",aggr="max"} 9\n'
            b'rpc_duration{mtype="summary",aggr="mean"} 3.8\n'
            b'rpc_duration{mtype="summary",aggr="min"} 1\n'
            b'rpc_duration{mtype="summary",aggr="p50"} 2\n'
            b'rpc_duration{mtype="summary",aggr="p95"} 9\n'
            b'rpc_duration{mtype="summary",aggr="p99"} 9\n'
        )

    def test_empty_resetting_timer(self):
        """Test an empty resetting timer renders nothing and caches nothing"""
        self.formatter.resetting_timer(self.buf, "rpc/duration", ResettingTimerSnapshot())

        assert self.body() == b""
        assert "rpc/duration" not in self.cache

    def test_header_repeated_per_render(self):
        """Test each render writes the header while the key is built once"""
        self.formatter.counter(self.buf, "db/reads", CounterSnapshot(1))
        self.formatter.counter(self.buf, "db/reads", CounterSnapshot(1))

        assert self.body().count(b"# HELP db_reads metric\n") == 2
        assert len(self.cache) == 1
