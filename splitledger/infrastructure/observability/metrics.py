"""Prometheus metrics for command throughput, split failures and persistence health"""

from prometheus_client import Counter, Histogram

# Command metrics
command_counter = Counter(
    "splitledger_commands_total",
    "Commands applied to the ledger",
    ["kind", "outcome"],  # applied | rejected
)

split_validation_failures_counter = Counter(
    "splitledger_split_validation_failures_total",
    "Expenses rejected because their split did not reconcile",
    ["policy"],
)

# Settlement metrics
suggestions_counter = Counter(
    "splitledger_settlement_suggestions_total",
    "Settlement suggestions produced",
    ["engine"],  # suggestions | optimizer
)

# Persistence metrics
persistence_failures_counter = Counter(
    "splitledger_persistence_failures_total",
    "Failed snapshot reads and writes",
    ["operation"],  # load | save
)

persistence_latency_histogram = Histogram(
    "splitledger_persistence_latency_seconds",
    "Snapshot save duration",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_command(kind: str, applied: bool) -> None:
    """Record one command outcome"""
    command_counter.labels(kind=kind, outcome="applied" if applied else "rejected").inc()


def record_suggestions(engine: str, count: int) -> None:
    suggestions_counter.labels(engine=engine).inc(count)
