"""Prometheus metrics for the relay pipeline."""

from prometheus_client import Counter, Gauge, Histogram

ALERTS_RECEIVED = Counter(
    "flashwatch_alerts_received_total",
    "Alert events accepted by the webhook",
)

ALERTS_REJECTED = Counter(
    "flashwatch_alerts_rejected_total",
    "Alert events dropped before processing",
    ["reason"],
)

ALERTS_IN_FLIGHT = Gauge(
    "flashwatch_alerts_in_flight",
    "Alert events currently moving through the pipeline",
)

PATH_TOTAL = Counter(
    "flashwatch_path_total",
    "Alert events by processing path",
    ["path"],
)

ENRICHMENT_FAILURES = Counter(
    "flashwatch_enrichment_failures_total",
    "Enrichment lookups that degraded to no data",
    ["source"],
)

NARRATIVE_TOTAL = Counter(
    "flashwatch_narrative_total",
    "Narrative generation attempts by outcome",
    ["outcome"],
)

NARRATIVE_LATENCY = Histogram(
    "flashwatch_narrative_latency_seconds",
    "Narrative generation latency in seconds",
    buckets=[0.5, 1.0, 2.0, 4.0, 8.0, 15.0, 30.0],
)

PUBLISH_TOTAL = Counter(
    "flashwatch_publish_total",
    "Publish attempts by content type and outcome",
    ["content_type", "outcome"],
)
