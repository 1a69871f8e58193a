#!/usr/bin/env python3
"""Main entry point for the Prometheus metrics exporter"""
import sys
import uvicorn
from config import Config
from app.server import MetricsServer
from metrics.registry import MetricsRegistry
from logging_config import setup_structured_logging, get_logger, log_server_startup, log_error


def run(registry: MetricsRegistry, config: Config) -> None:
    """Serve registry over HTTP until the server stops; metrics on any path"""
    logger = get_logger(__name__)
    server = MetricsServer(config, registry)

    logger.info("Starting prometheus http server", addr=config.address, event_type="server_listen")
    try:
        uvicorn.run(
            server.get_app(),
            host=config.metrics_host,
            port=config.metrics_port,
            timeout_keep_alive=config.read_timeout,
            timeout_graceful_shutdown=config.write_timeout,
            log_config=None  # We handle logging ourselves
        )
    except SystemExit:
        # uvicorn exits when it cannot bind the listener
        logger.warning("Unable to start prometheus metrics server", addr=config.address, event_type="server_bind_error")
        raise


def main():
    """Main application entry point"""
    try:
        config = Config()

        setup_structured_logging(config)
        logger = get_logger(__name__)

        log_server_startup(logger, config)

        run(MetricsRegistry(), config)

    except Exception as e:
        logger = get_logger(__name__)
        log_error(logger, e, {"component": "main", "phase": "startup"})
        sys.exit(1)


if __name__ == '__main__':
    main()
