from .api import CartApi, CartApiError
from .cart import AppState, CartItem, CartReconciler, CartState, PendingChange
from .store import ClientStateRepository, JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "CartApi", "CartApiError",
    "AppState", "CartItem", "CartReconciler", "CartState", "PendingChange",
    "ClientStateRepository", "JsonFileStore", "KeyValueStore", "MemoryStore",
]
