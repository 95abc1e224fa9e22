"""FlashWatch Relay - enrich on-chain alerts and publish them to Moltbook."""

__version__ = "0.1.0"
