"""
Prometheus metrics for the Keycloak resource operator.

This module provides metrics collection for reconciliation outcomes,
Keycloak connectivity and remote operations, plus the HTTP server that
exposes them.
"""

import logging
import time
from contextlib import asynccontextmanager

# aiohttp ships with kopf; the metrics server reuses it
from aiohttp.web import Application, AppRunner, Request, Response, TCPSite
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# Dedicated registry so tests can import this module repeatedly
METRICS_REGISTRY = CollectorRegistry()

RECONCILIATION_TOTAL = Counter(
    "keycloak_resource_operator_reconciliation_total",
    "Total number of reconciliation attempts",
    ["resource_type", "namespace", "result"],
    registry=METRICS_REGISTRY,
)

RECONCILIATION_DURATION = Histogram(
    "keycloak_resource_operator_reconciliation_duration_seconds",
    "Time spent on reconciliation operations",
    ["resource_type", "namespace"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=METRICS_REGISTRY,
)

RECONCILIATION_ERRORS = Counter(
    "keycloak_resource_operator_reconciliation_errors_total",
    "Total number of reconciliation errors",
    ["resource_type", "namespace", "error_type", "retryable"],
    registry=METRICS_REGISTRY,
)

KEYCLOAK_CONNECTION_STATUS = Gauge(
    "keycloak_resource_operator_keycloak_connected",
    "Keycloak connection status observed by the last probe (1=connected, 0=disconnected)",
    ["resource_type", "namespace", "name"],
    registry=METRICS_REGISTRY,
)

REMOTE_OPERATIONS_TOTAL = Counter(
    "keycloak_resource_operator_remote_operations_total",
    "Keycloak Admin API operations issued by pipeline steps and finalizers",
    ["operation", "result"],
    registry=METRICS_REGISTRY,
)


class MetricsCollector:
    """Collects and manages metrics for the operator."""

    @asynccontextmanager
    async def track_reconciliation(self, resource_type: str, namespace: str):
        """
        Context manager to track reconciliation operations.

        Args:
            resource_type: Type of resource being reconciled
            namespace: Namespace of the resource
        """
        start_time = time.time()
        result = "unknown"

        try:
            yield
            result = "success"
        except Exception as e:
            result = "error"
            retryable = "true" if getattr(e, "retryable", False) else "false"
            RECONCILIATION_ERRORS.labels(
                resource_type=resource_type,
                namespace=namespace,
                error_type=type(e).__name__,
                retryable=retryable,
            ).inc()
            raise
        finally:
            RECONCILIATION_TOTAL.labels(
                resource_type=resource_type, namespace=namespace, result=result
            ).inc()
            RECONCILIATION_DURATION.labels(
                resource_type=resource_type, namespace=namespace
            ).observe(time.time() - start_time)

    def record_connection_status(
        self, resource_type: str, namespace: str, name: str, connected: bool
    ) -> None:
        """Record the outcome of a Keycloak connection probe."""
        KEYCLOAK_CONNECTION_STATUS.labels(
            resource_type=resource_type, namespace=namespace, name=name
        ).set(1 if connected else 0)

    def record_remote_operation(self, operation: str, success: bool) -> None:
        """Count a Keycloak Admin API operation."""
        REMOTE_OPERATIONS_TOTAL.labels(
            operation=operation, result="success" if success else "error"
        ).inc()


class MetricsServer:
    """HTTP server for exposing Prometheus metrics."""

    def __init__(self, port: int = 8081, host: str = "0.0.0.0"):
        self.port = port
        self.host = host
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            metrics_data = generate_latest(METRICS_REGISTRY)
            return Response(body=metrics_data, headers={"Content-Type": CONTENT_TYPE_LATEST})
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        self.runner = AppRunner(self.app)
        await self.runner.setup()

        self.site = TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        logger.info(f"Metrics server started on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop the metrics server."""
        if self.site:
            await self.site.stop()
            self.site = None

        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        logger.info("Metrics server stopped")


# Global metrics collector instance
metrics_collector = MetricsCollector()
