"""Prometheus exporter assembling a full scrape from the registry"""
from typing import Any, Callable, Dict, List
from metrics.models import MetricKind, MetricType
from metrics.exporters.formatter import HeaderCache, PrometheusFormatter
from logging_config import get_logger


logger = get_logger(__name__)


class PrometheusExporter:
    """Render every registry entry in Prometheus text format

    One exporter, and its header cache, is shared by all scrapes of a server.
    """

    def __init__(self, cache: HeaderCache = None, gauge_type: MetricType = MetricType.GAUAGE):
        self.cache = cache if cache is not None else HeaderCache()
        self.formatter = PrometheusFormatter(self.cache, gauge_type)
        self._renderers: Dict[MetricKind, Callable[[List[bytes], str, Any], None]] = {
            MetricKind.COUNTER: self.formatter.counter,
            MetricKind.GAUGE: self.formatter.gauge,
            MetricKind.GAUGE_FLOAT64: self.formatter.gauge_float64,
            MetricKind.HISTOGRAM: self.formatter.histogram,
            MetricKind.METER: self.formatter.meter,
            MetricKind.TIMER: self.formatter.timer,
            MetricKind.RESETTING_TIMER: self.formatter.resetting_timer,
        }

    def render(self, registry) -> bytes:
        """Response body for one scrape, in registry iteration order"""
        buf: List[bytes] = []

        for name, metric in registry.each():
            kind = getattr(metric, "kind", None)
            renderer = self._renderers.get(kind) if isinstance(kind, MetricKind) else None
            if renderer is None:
                # Unsupported kinds are left out of the scrape
                logger.debug("Skipping metric of unsupported kind", metric=name, kind=repr(kind))
                continue
            renderer(buf, name, metric.snapshot())

        return b"".join(buf)

    def render_text(self, registry) -> str:
        """Same as render(), decoded as UTF-8"""
        return self.render(registry).decode("utf-8")
