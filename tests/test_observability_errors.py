from types import SimpleNamespace

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from starlette.requests import Request
from starlette.responses import Response

from app.gymdesk.core.db_timing import add_db_time, get_db_query_count, get_db_time_ms, start_db_timer, stop_db_timer
from app.gymdesk.core.error_catalog import AppError, ErrorCatalog
from app.gymdesk.core.errors import setup_exception_handlers
from app.gymdesk.core.metrics import metrics
from app.gymdesk.middleware.observability import build_request_log_payload


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/gymdesk/pos/sales",
        "headers": [],
        "route": SimpleNamespace(path="/gymdesk/pos/sales"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.tenant_id = "tenant-1"
    request.state.user_id = "user-1"
    request.state.error_code = "INSUFFICIENT_STOCK"
    response = Response(status_code=409)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        db_time_ms=4.5678,
        db_query_count=3,
    )

    assert payload["trace_id"] == "trace-1"
    assert payload["tenant_id"] == "tenant-1"
    assert payload["route"] == "/gymdesk/pos/sales"
    assert payload["status_code"] == 409
    assert payload["latency_ms"] == 12.35
    assert payload["db_time_ms"] == 4.57
    assert payload["db_queries"] == 3
    assert payload["error_code"] == "INSUFFICIENT_STOCK"


def test_db_timer_accumulates_within_request_scope():
    assert get_db_time_ms() is None
    token = start_db_timer()
    try:
        add_db_time(1.5)
        add_db_time(2.0)
        assert get_db_time_ms() == 3.5
        assert get_db_query_count() == 2
    finally:
        stop_db_timer(token)
    assert get_db_time_ms() is None
    add_db_time(10.0)
    assert get_db_query_count() is None


def _error_app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/lock-timeout")
    def lock_timeout():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    @app.get("/stock")
    def stock():
        raise AppError(ErrorCatalog.INSUFFICIENT_STOCK, details={"available": 1, "requested": 2})

    @app.get("/amount")
    def amount(value: int):
        return {"value": value}

    return app


def test_lock_timeout_maps_to_conflict_and_metric():
    metrics.reset()
    with TestClient(_error_app(), raise_server_exceptions=False) as client:
        response = client.get("/lock-timeout")

    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.LOCK_TIMEOUT.code

    content = metrics.render().content.decode("utf-8")
    if metrics.enabled:
        assert "lock_wait_timeout_total" in content
    else:
        assert "metrics_disabled" in content


def test_app_error_payload_shape():
    with TestClient(_error_app()) as client:
        response = client.get("/stock")

    assert response.status_code == 409
    assert response.json() == {
        "code": "INSUFFICIENT_STOCK",
        "message": ErrorCatalog.INSUFFICIENT_STOCK.message,
        "category": "INSUFFICIENT_STOCK",
        "details": {"available": 1, "requested": 2},
        "trace_id": "",
    }


def test_request_validation_payload_lists_fields():
    with TestClient(_error_app()) as client:
        response = client.get("/amount", params={"value": "lots"})

    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == ErrorCatalog.VALIDATION_ERROR.code
    assert payload["category"] == "VALIDATION"
    assert payload["details"]["errors"][0]["field"] == "value"
