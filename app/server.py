"""FastAPI server setup and routes"""
import threading
import time
from fastapi import FastAPI, Response
from config import Config
from metrics.registry import MetricsRegistry
from metrics.exporters.formatter import HeaderCache
from metrics.exporters.prometheus import PrometheusExporter
from logging_config import get_logger, log_scrape, log_error
from middleware.request_logging import RequestLoggingMiddleware


logger = get_logger(__name__)


class MetricsServer:
    """FastAPI server exposing a metrics registry to Prometheus scrapers"""

    def __init__(self, config: Config, registry: MetricsRegistry = None):
        self.config = config
        self.app = FastAPI(
            title="Prometheus Metrics Exporter",
            version=config.service_version,
            docs_url=None,
            redoc_url=None,
            openapi_url=None
        )
        self.registry = registry if registry is not None else MetricsRegistry()

        # Header cache lives as long as the server
        self.cache = HeaderCache()
        self.exporter = PrometheusExporter(self.cache, config.gauge_type)

        # Scrape state
        self.scrape_count = 0
        self.scrape_errors = 0
        self.last_scrape_time = 0.0
        self._state_lock = threading.Lock()

        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self):
        """Setup HTTP middleware"""
        if self.config.enable_request_logging:
            self.app.add_middleware(RequestLoggingMiddleware)

    def _setup_routes(self):
        """Setup FastAPI routes"""

        # Plain def: FastAPI runs overlapping scrapes on its threadpool
        @self.app.get('/{path:path}', response_class=Response)
        def get_metrics(path: str):
            """Serve metrics in Prometheus format on any path"""
            body = self.scrape()
            return Response(body, headers={"Content-Type": "text/plain", "Content-Length": str(len(body))})

    def scrape(self) -> bytes:
        """Render the registry once and record the scrape"""
        start_time = time.time()
        try:
            body = self.exporter.render(self.registry)
        except Exception as e:
            with self._state_lock:
                self.scrape_errors += 1
            log_error(logger, e, {"component": "scrape", "scrape_count": self.scrape_count})
            raise

        now = time.time()
        with self._state_lock:
            self.scrape_count += 1
            self.last_scrape_time = now
        log_scrape(logger, len(self.registry), now - start_time, len(body))
        return body

    def get_app(self) -> FastAPI:
        """Get the FastAPI application"""
        return self.app
