"""
Prometheus metrics for loader setup runs

Setup is a short-lived CLI process, so metrics are not served over HTTP.
The CLI can write the registry to a node-exporter textfile instead.
"""
from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    write_to_textfile,
)


# Private registry so importing this module in tests never touches the global one
REGISTRY = CollectorRegistry()


# =======================
# SETUP METRICS
# =======================

# Loader pipeline runs by outcome
setup_runs_total = Counter(
    name="loader_setup_runs_total",
    documentation="Loader configurations processed by the setup tool",
    labelnames=["status"],  # status: success, invalid, fatal
    registry=REGISTRY,
)

# Validation failures by input field
validation_failures_total = Counter(
    name="loader_validation_failures_total",
    documentation="Loader configurations rejected by input validation",
    labelnames=["field_name"],
    registry=REGISTRY,
)

# Secrets passed through KMS
secrets_encrypted_total = Counter(
    name="loader_secrets_encrypted_total",
    documentation="Secret values encrypted with the loader master key",
    registry=REGISTRY,
)

# Duration of one loader pipeline run
setup_duration_seconds = Histogram(
    name="loader_setup_duration_seconds",
    documentation="Time spent configuring one loader in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=REGISTRY,
)


# =======================
# HELPERS
# =======================

def record_loader_outcome(status: str, duration_seconds: float, field_name: str | None = None) -> None:
    """
    Record the outcome of one loader pipeline run.

    Args:
        status: "success", "invalid" or "fatal"
        duration_seconds: Time spent on the loader
        field_name: Input field that failed validation, if any
    """
    setup_runs_total.labels(status=status).inc()
    setup_duration_seconds.observe(duration_seconds)
    if status == "invalid":
        validation_failures_total.labels(field_name=field_name or "unknown").inc()


def get_metrics() -> bytes:
    """Render the registry in Prometheus text exposition format."""
    return generate_latest(REGISTRY)


def write_metrics(path: str) -> None:
    """
    Write the registry to a textfile collector file.

    Args:
        path: Destination file, replaced atomically
    """
    write_to_textfile(path, REGISTRY)
