# backend/monitoring.py
"""
Centralized monitoring: Prometheus metrics, structured JSON logging, optional Sentry.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

from prometheus_client import (
    Counter, Histogram,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)
from pythonjsonlogger import jsonlogger
import sentry_sdk

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logger setup
def setup_logger(name: str = "brd-studio", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            fmt = jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            )
            handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "brd_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "brd_request_latency_seconds",
    "Request latency in seconds",
    ["endpoint"],
)

LLM_CALL_COUNTER = Counter(
    "brd_llm_calls_total",
    "AI gateway calls",
    ["operation", "outcome"],
)

LLM_CALL_LATENCY = Histogram(
    "brd_llm_call_latency_seconds",
    "AI gateway call latency",
    ["operation"],
)

RECORDS_WRITTEN = Counter(
    "brd_records_written_total",
    "Rows inserted or updated in the local store",
    ["table", "op"],
)

UPLOADS_STORED = Counter(
    "brd_final_uploads_total",
    "Final documents stored on disk",
)


# --- Helper wrappers (never crash the app)
def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    try:
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start_ts)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    except Exception:
        pass


def observe_llm_call(start_ts: float, operation: str, outcome: str):
    try:
        LLM_CALL_LATENCY.labels(operation=operation).observe(time.time() - start_ts)
        LLM_CALL_COUNTER.labels(operation=operation, outcome=outcome).inc()
    except Exception:
        pass


def inc_record_written(table: str, op: str):
    try:
        RECORDS_WRITTEN.labels(table=table, op=op).inc()
    except Exception:
        pass


def inc_upload_stored():
    try:
        UPLOADS_STORED.inc()
    except Exception:
        pass


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    try:
        return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
    except Exception:
        return b"", CONTENT_TYPE_LATEST
