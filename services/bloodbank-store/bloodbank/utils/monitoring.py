from prometheus_client import Counter, Histogram, Gauge, generate_latest
import structlog

logger = structlog.get_logger()

# Prometheus metrics
STORE_OPERATIONS = Counter(
    'bloodbank_store_operations_total',
    'Total store operations',
    ['collection', 'operation', 'backend']
)

STORE_ERRORS = Counter(
    'bloodbank_store_errors_total',
    'Total store operation errors',
    ['collection', 'error_type']
)

FALLBACK_FLUSH_DURATION = Histogram(
    'bloodbank_fallback_flush_duration_seconds',
    'Time spent rewriting the fallback store file'
)

PRIMARY_CONNECTED = Gauge(
    'bloodbank_primary_connected',
    'Whether the primary document store is connected'
)

INVENTORY_UNITS = Gauge(
    'bloodbank_inventory_units',
    'Units in inventory by blood type',
    ['blood_type']
)


def setup_prometheus_metrics():
    """Setup Prometheus metrics collection."""
    PRIMARY_CONNECTED.set(0)
    logger.info("Prometheus metrics enabled")


def track_store_operation(collection: str, operation: str, backend: str):
    """Count a store operation against the backend that served it."""
    STORE_OPERATIONS.labels(
        collection=collection,
        operation=operation,
        backend=backend
    ).inc()


def track_store_error(collection: str, error_type: str):
    """Track store errors."""
    STORE_ERRORS.labels(
        collection=collection,
        error_type=error_type
    ).inc()


def track_fallback_flush(duration: float):
    FALLBACK_FLUSH_DURATION.observe(duration)


def set_primary_connected(connected: bool):
    PRIMARY_CONNECTED.set(1 if connected else 0)


def update_inventory_metrics(distribution: dict):
    """Update blood inventory metrics."""
    for blood_type, quantity in distribution.items():
        INVENTORY_UNITS.labels(blood_type=blood_type).set(quantity)


def get_prometheus_metrics():
    """Get Prometheus metrics in text format."""
    return generate_latest()
