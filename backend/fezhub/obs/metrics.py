"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


REQUEST_COUNTER = Counter(
	"fezhub_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"fezhub_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

FEZ_ACTIONS = Counter(
	"fezhub_fez_actions_total",
	"Fez lifecycle actions applied",
	["action"],
)

FEZ_POSTS = Counter(
	"fezhub_fez_posts_total",
	"Fez discussion posts created or deleted",
	["action"],
)

BARREL_CONFLICTS = Counter(
	"fezhub_barrel_save_conflicts_total",
	"Barrel saves rejected because of a stale version",
	["barrel_type"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_fez_action(action: str) -> None:
	FEZ_ACTIONS.labels(action=action).inc()


def inc_fez_post(action: str) -> None:
	FEZ_POSTS.labels(action=action).inc()


def inc_barrel_conflict(barrel_type: str) -> None:
	BARREL_CONFLICTS.labels(barrel_type=barrel_type).inc()
