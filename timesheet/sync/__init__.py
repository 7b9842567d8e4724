from .controller import SyncController
from .fallback import LocalFallbackCache
from .remote import HttpError, NetworkError, RemoteDocumentClient, RemoteOperationFailed

__all__ = [
    "HttpError",
    "LocalFallbackCache",
    "NetworkError",
    "RemoteDocumentClient",
    "RemoteOperationFailed",
    "SyncController",
]
