import time
from fastapi import FastAPI, Request, Response
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# --- Metric objects ---
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["path", "method", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_latency_seconds",
    "Request latency seconds",
    labelnames=["path", "method"],
)
CHARACTERS_CREATED = Counter(
    "characters_created_total", "Characters inserted through POST /character"
)
DB_OK_G = Gauge("db_ok", "Database availability (1 ok, 0 down)")


def _route_template(request: Request) -> str:
    # Label by route template so /character/1 and /character/2 share a series
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


# --- Helpers routes call ---
def record_character_created() -> None:
    CHARACTERS_CREATED.inc()


def observe_health(db_ok: bool) -> None:
    DB_OK_G.set(1 if db_ok else 0)


# --- Installation: middleware + /metrics endpoint ---
def install(app: FastAPI) -> None:
    @app.middleware("http")
    async def _metrics_mw(request: Request, call_next):
        t0 = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            path = _route_template(request)
            REQUEST_LATENCY.labels(path=path, method=request.method).observe(
                time.perf_counter() - t0
            )
            REQUESTS.labels(path=path, method=request.method, status=str(status)).inc()

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
