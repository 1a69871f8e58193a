"""Metrics registry the exporter reads from on every scrape"""
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple
from logging_config import get_logger


logger = get_logger(__name__)


class DuplicateMetricError(ValueError):
    """Raised when a name is registered twice"""

    def __init__(self, name: str):
        super().__init__(f"Duplicate metric: {name}")
        self.name = name


class MetricsRegistry:
    """Thread-safe mapping from metric name to metric object

    A metric object exposes ``kind`` (a ``MetricKind``) and ``snapshot()``.
    Objects with an unknown kind may be registered; the exporter skips them.
    """

    def __init__(self):
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, name: str, metric: Any) -> None:
        """Register a new metric under name"""
        if not callable(getattr(metric, "snapshot", None)):
            raise ValueError("Metric must provide a snapshot() method")

        with self._lock:
            if name in self._metrics:
                raise DuplicateMetricError(name)
            self._metrics[name] = metric
        logger.debug("Registered metric", metric=name, kind=str(getattr(metric, "kind", None)))

    def get_or_register(self, name: str, factory: Callable[[], Any]) -> Any:
        """Return the metric under name, registering factory() if absent"""
        with self._lock:
            existing = self._metrics.get(name)
            if existing is not None:
                return existing
            metric = factory()
            if not callable(getattr(metric, "snapshot", None)):
                raise ValueError("Metric must provide a snapshot() method")
            self._metrics[name] = metric
        logger.debug("Registered metric", metric=name, kind=str(getattr(metric, "kind", None)))
        return metric

    def unregister(self, name: str) -> None:
        """Remove a metric; unknown names are ignored"""
        with self._lock:
            self._metrics.pop(name, None)

    def get(self, name: str) -> Optional[Any]:
        """Get metric by name"""
        with self._lock:
            return self._metrics.get(name)

    def list_metrics(self) -> List[str]:
        """List all registered metric names"""
        with self._lock:
            return list(self._metrics.keys())

    def each(self) -> List[Tuple[str, Any]]:
        """Copy of every (name, metric) pair, in registration order"""
        with self._lock:
            return list(self._metrics.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._metrics
