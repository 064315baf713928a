# Prometheus metrics for request health and the team/credential flows.
# The middleware records timing and counts for every request; domain
# counters are bumped by the routes and services that own the events.

from time import monotonic

from fastapi import Request
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_DURATION_MS = Histogram(
    "request_duration_ms",
    "API request duration in milliseconds",
    ["method", "route"],
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2000, 5000, 10000],
)
REQUESTS_TOTAL = Counter(
    "requests_total",
    "Total API requests",
    ["method", "route", "status_code"],
)

# Business-rule outcomes, labeled by error kind ("ok" on success).
TEAM_OPERATIONS_TOTAL = Counter(
    "team_operations_total",
    "Team and invitation operations grouped by outcome",
    ["operation", "outcome"],
)

# Close API credential checks (valid|invalid|timeout).
CREDENTIAL_CHECKS_TOTAL = Counter(
    "credential_checks_total",
    "Integration credential checks grouped by provider and outcome",
    ["provider", "outcome"],
)


def record_team_operation(operation: str, outcome: str) -> None:
    TEAM_OPERATIONS_TOTAL.labels(operation=operation, outcome=outcome or "unknown").inc()


def record_credential_check(provider: str, outcome: str) -> None:
    CREDENTIAL_CHECKS_TOTAL.labels(provider=provider, outcome=outcome).inc()


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = monotonic()
        response = await call_next(request)
        duration_ms = (monotonic() - start) * 1000.0
        route = request.scope.get("route")
        route_path = getattr(route, "path", None) or request.url.path
        REQUEST_DURATION_MS.labels(request.method, route_path).observe(duration_ms)
        REQUESTS_TOTAL.labels(request.method, route_path, str(response.status_code)).inc()
        return response
