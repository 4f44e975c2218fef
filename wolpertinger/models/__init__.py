"""Database models."""

from wolpertinger.models.bridge import BlockedBridgeRecord, BridgeRecord

__all__ = [
    "BridgeRecord",
    "BlockedBridgeRecord",
]
