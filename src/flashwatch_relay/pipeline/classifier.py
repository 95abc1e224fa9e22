"""Materiality classification."""

from flashwatch_relay.publisher.models import ProcessingPath


def classify(
    value_eth: float,
    threshold_eth: float,
    narrative_enabled: bool,
) -> ProcessingPath:
    """Choose the processing path for an alert.

    The enriched path needs both a value at or above the threshold and a
    configured narrative credential; anything else is formatted from the
    template without network calls.
    """
    if narrative_enabled and value_eth >= threshold_eth:
        return ProcessingPath.ENRICHED
    return ProcessingPath.TEMPLATE
