"""Address Relay - webhook ingestion and pub/sub relay for on-chain address activity."""

__version__ = "1.0.0"
