#!/usr/bin/env python3
"""
Keycloak Resource Operator - Main entry point for the kopf-based operator.

This operator reconciles Keycloak connections, realms, clients and realm
roles declared as Kubernetes custom resources against existing Keycloak
servers.

Usage:
    python -m keycloak_resource_operator.operator
    # Or with kopf directly:
    kopf run -m keycloak_resource_operator.operator --all-namespaces

Environment Variables:
    KEYCLOAK_OPERATOR_NAMESPACES: Comma-separated list of namespaces to watch
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    METRICS_ENABLED / METRICS_PORT: Prometheus endpoint
    CONNECTION_RETRY_SECONDS: Revisit delay for unreachable Keycloak servers
"""

import logging
import sys

import kopf

# Import all handler modules to register them with kopf
from keycloak_resource_operator.handlers import (  # noqa: F401
    client,
    keycloak,
    realm,
    realm_role,
)
from keycloak_resource_operator.observability.logging import setup_structured_logging
from keycloak_resource_operator.observability.metrics import MetricsServer
from keycloak_resource_operator.services.context import shutdown_event
from keycloak_resource_operator.settings import settings as operator_settings

# Global reference to metrics server for cleanup
_global_metrics_server: MetricsServer | None = None


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
    )


@kopf.on.startup()
async def startup_handler(settings: kopf.OperatorSettings, **_) -> None:
    """
    Operator startup configuration.

    Configures kopf behavior and starts the metrics endpoint.
    """
    logging.info("Starting Keycloak Resource Operator...")
    shutdown_event.clear()

    settings.watching.reconnect_backoff = 1.0
    settings.persistence.finalizer = "keycloak.mdvr.nl/kopf-finalizer"
    settings.execution.max_workers = 20

    watched_namespaces = operator_settings.watched_namespaces
    if watched_namespaces:
        logging.info(f"Watching namespaces: {', '.join(watched_namespaces)}")
    else:
        logging.info("Watching all namespaces (cluster-wide mode)")

    if not operator_settings.metrics_enabled:
        logging.info("Metrics server disabled")
        return

    try:
        metrics_server = MetricsServer(
            port=operator_settings.metrics_port, host=operator_settings.metrics_host
        )
        await metrics_server.start()

        global _global_metrics_server
        _global_metrics_server = metrics_server
    except OSError as e:
        # Don't fail operator startup if metrics server fails
        logging.error(f"Failed to start metrics server: {e}")
        logging.warning("Continuing without metrics server")


@kopf.on.cleanup()
async def cleanup_handler(**_) -> None:
    """
    Operator cleanup handler.

    Signals running reconciliations to stop at their next checkpoint and
    stops the metrics server.
    """
    logging.info("Shutting down Keycloak Resource Operator...")
    shutdown_event.set()

    global _global_metrics_server
    if _global_metrics_server:
        await _global_metrics_server.stop()
        _global_metrics_server = None


def main() -> None:
    """
    Main entry point for the operator.

    Configures logging, determines the namespace scope and runs kopf.
    """
    configure_logging()

    watched_namespaces = operator_settings.watched_namespaces

    try:
        if watched_namespaces:
            kopf.run(
                namespaces=watched_namespaces,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
            )
        else:
            kopf.run(
                clusterwide=True,
                liveness_endpoint="http://0.0.0.0:8080/healthz",
            )
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)


if __name__ == "__main__":
    main()
