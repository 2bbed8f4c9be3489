"""
Outbound collaborators of the gateway.

Exports the Dropp adapter, the transaction record store client and the
Hedera mirror node client.
"""
from .dropp_client import DroppClient
from .mirror_node import MirrorNodeClient
from .record_store import TransactionRecordClient

__all__ = [
    "DroppClient",
    "MirrorNodeClient",
    "TransactionRecordClient",
]
