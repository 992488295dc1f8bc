#!/usr/bin/env python3
"""Launcher script for the REST API server."""

import sys
import uvicorn
from mqtopic.api import app, set_logger, set_metrics
from mqtopic.config import Config
from mqtopic.logger import Logger
from mqtopic.prometheus_metrics import PrometheusMetrics


def configure_api(config: Config):
    """Apply logging and monitoring settings to the API."""
    set_logger(Logger("api", config.get("logging", "level")))
    
    if config.get("monitoring", "prometheus_enabled"):
        metrics = PrometheusMetrics(port=config.get("monitoring", "prometheus_port", 9090))
        metrics.start()
        set_metrics(metrics)


if __name__ == "__main__":
    config = Config()
    valid, errors = config.validate()
    if not valid:
        for error in errors:
            print(f"Configuration error: {error}")
        sys.exit(1)
    
    configure_api(config)
    
    host = config.get("api", "host", "0.0.0.0")
    port = config.get("api", "port", 8080)
    print(f"Starting API server on {host}:{port}")
    
    try:
        uvicorn.run(app, host=host, port=port)
    except KeyboardInterrupt:
        print("\nShutting down...")
