"""Pipeline layer - admission, classification and orchestration."""

from flashwatch_relay.pipeline.classifier import classify
from flashwatch_relay.pipeline.relay import AlertOutcome, AlertState, RelayPipeline

__all__ = [
    "AlertOutcome",
    "AlertState",
    "RelayPipeline",
    "classify",
]
