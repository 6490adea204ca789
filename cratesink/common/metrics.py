"""
Prometheus metrics for monitoring and observability.

Provides counters, histograms, and gauges for tracking:
- Document normalization and type suffixing
- Malformed fragments
- Generated DDL
- Catalog reconstruction
"""

import time
from typing import Callable
from functools import wraps
from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
)

# Create a global registry
REGISTRY = CollectorRegistry()

# ========== Counters ==========

documents_normalized_total = Counter(
    "documents_normalized_total",
    "Total number of documents normalized",
    ["table", "status"],  # clean/malformed/failure
    registry=REGISTRY,
)

fields_suffixed_total = Counter(
    "fields_suffixed_total",
    "Total number of fields renamed with a type suffix",
    ["table"],
    registry=REGISTRY,
)

malformed_fragments_total = Counter(
    "malformed_fragments_total",
    "Total number of documents with values that did not fit their column",
    ["table", "strategy"],
    registry=REGISTRY,
)

ddl_statements_total = Counter(
    "ddl_statements_total",
    "Total number of ALTER TABLE statements generated",
    ["table"],
    registry=REGISTRY,
)

catalog_reconstructions_total = Counter(
    "catalog_reconstructions_total",
    "Total number of schemas rebuilt from the catalog",
    ["status"],  # success/failure
    registry=REGISTRY,
)

# ========== Histograms ==========

batch_processing_duration_seconds = Histogram(
    "batch_processing_duration_seconds",
    "Time to process a batch of documents",
    ["table"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
    registry=REGISTRY,
)

# ========== Gauges ==========

tracked_tables = Gauge(
    "tracked_tables",
    "Number of tables with a learned schema",
    registry=REGISTRY,
)


# ========== Metric Decorators ==========

def track_batch_processing(func: Callable):
    """
    Decorator to track batch processing duration.

    The decorated method must take the table name as its first
    argument after self. Nothing is recorded when the instance has
    metrics_enabled set to False.
    """
    @wraps(func)
    def wrapper(self, table, *args, **kwargs):
        start_time = time.perf_counter()
        try:
            return func(self, table, *args, **kwargs)
        finally:
            if getattr(self, "metrics_enabled", True):
                duration = time.perf_counter() - start_time
                batch_processing_duration_seconds.labels(
                    table=table).observe(duration)

    return wrapper


def get_metrics() -> bytes:
    """
    Get current metrics in Prometheus format.

    Returns:
        Metrics as bytes
    """
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get content type for metrics response."""
    return CONTENT_TYPE_LATEST
