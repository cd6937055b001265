from stocksync.client.api_client import ApiRequestError, ApiUnavailableError, SyncApiClient
from stocksync.client.local_cache import LocalCache
from stocksync.client.offline_queue import OfflineQueue
from stocksync.client.pending import OperationType, PendingOperation, PendingOperationStore
from stocksync.client.sync_orchestrator import SyncOrchestrator, SyncResult

__all__ = [
    "ApiRequestError",
    "ApiUnavailableError",
    "LocalCache",
    "OfflineQueue",
    "OperationType",
    "PendingOperation",
    "PendingOperationStore",
    "SyncApiClient",
    "SyncOrchestrator",
    "SyncResult",
]
