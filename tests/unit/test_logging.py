"""Unit tests for structured logging."""

import json
import logging
import sys

from keycloak_resource_operator.observability.logging import (
    CorrelationIDFilter,
    HealthProbeFilter,
    OperatorLogger,
    StructuredFormatter,
    get_correlation_id,
    set_correlation_id,
)


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="keycloak_resource_operator.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_includes_structured_fields(self):
        record = make_record(
            resource_type="keycloakrealms",
            namespace="team-a",
            step="PutRealm",
            correlation_id="abc12345",
        )

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "keycloak_resource_operator.test"
        assert payload["correlation_id"] == "abc12345"
        assert payload["resource_type"] == "keycloakrealms"
        assert payload["step"] == "PutRealm"

    def test_unknown_attributes_are_not_copied(self):
        payload = json.loads(StructuredFormatter().format(make_record(password="x")))

        assert "password" not in payload

    def test_exception_is_formatted(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record()
            record.exc_info = sys.exc_info()

        payload = json.loads(StructuredFormatter().format(record))

        assert "RuntimeError: boom" in payload["exception"]


class TestFilters:
    def test_health_probe_lines_are_dropped(self):
        assert HealthProbeFilter().filter(make_record('"GET /healthz HTTP/1.1" 200')) is False
        assert HealthProbeFilter().filter(make_record("Reconciled realm")) is True

    def test_correlation_id_is_attached(self):
        set_correlation_id("feedbeef")
        record = make_record()

        CorrelationIDFilter().filter(record)

        assert record.correlation_id == "feedbeef"
        assert get_correlation_id() == "feedbeef"


class TestOperatorLogger:
    def test_bind_merges_fields(self):
        base = OperatorLogger("keycloak_resource_operator.test").bind(namespace="team-a")

        bound = base.bind(resource_name="realm")

        assert bound.context == {"namespace": "team-a", "resource_name": "realm"}
        assert base.context == {"namespace": "team-a"}

    def test_bound_fields_reach_the_record(self, caplog):
        logger = OperatorLogger("keycloak_resource_operator.test").bind(
            resource_type="keycloakclients"
        )

        with caplog.at_level(logging.INFO, logger="keycloak_resource_operator.test"):
            logger.info("Synchronized", step="PutClient")

        record = caplog.records[-1]
        assert record.resource_type == "keycloakclients"
        assert record.step == "PutClient"

    def test_reconciliation_start_sets_correlation_id(self, caplog):
        logger = OperatorLogger("keycloak_resource_operator.test")

        with caplog.at_level(logging.INFO, logger="keycloak_resource_operator.test"):
            corr_id = logger.log_reconciliation_start(
                resource_type="keycloakrealms",
                resource_name="realm",
                namespace="team-a",
                correlation_id="0badcafe",
            )

        assert corr_id == "0badcafe"
        assert get_correlation_id() == "0badcafe"
        assert caplog.records[-1].operation == "reconcile_start"

    def test_reconciliation_error_carries_error_type(self, caplog):
        logger = OperatorLogger("keycloak_resource_operator.test")

        with caplog.at_level(logging.ERROR, logger="keycloak_resource_operator.test"):
            logger.log_reconciliation_error(
                resource_type="keycloakrealms",
                resource_name="realm",
                namespace="team-a",
                error=ValueError("bad"),
                duration=0.5,
            )

        record = caplog.records[-1]
        assert record.error_type == "ValueError"
        assert record.duration == 0.5
