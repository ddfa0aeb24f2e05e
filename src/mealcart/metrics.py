"""Prometheus metrics definitions for Mealcart."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "mealcart_http_requests_total",
    "Total number of HTTP requests processed by the Mealcart API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "mealcart_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Mealcart API",
    ["method", "path"],
)

SYNC_RUNS = Counter(
    "mealcart_shopping_sync_runs_total",
    "Meal ingredient sync runs by outcome",
    ["outcome"],
)

SYNC_LATENCY = Histogram(
    "mealcart_shopping_sync_duration_seconds",
    "Wall-clock duration of meal ingredient sync runs",
)

EMBEDDING_REQUESTS = Counter(
    "mealcart_embedding_requests_total",
    "Batched embedding API requests by status",
    ["status"],
)

INGREDIENT_MATCHES = Counter(
    "mealcart_ingredient_matches_total",
    "Aggregated meal ingredients by master list match outcome",
    ["result"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SYNC_RUNS",
    "SYNC_LATENCY",
    "EMBEDDING_REQUESTS",
    "INGREDIENT_MATCHES",
]
