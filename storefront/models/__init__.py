# storefront/models/__init__.py
from .auth import AdminNotification, AdminPushToken, Role, User
from .cart import Cart, CartItem
from .catalog import Category, Collection, Product, collection_items
from .ledger import Account, AccountType, Transaction, TransactionType, signed_amount
from .order import Order, OrderItem, OrderStatus
from .wishlist import WishlistItem

__all__ = [
    "User", "Role", "AdminNotification", "AdminPushToken",
    "Account", "AccountType", "Transaction", "TransactionType", "signed_amount",
    "Category", "Product", "Collection", "collection_items",
    "Cart", "CartItem",
    "Order", "OrderItem", "OrderStatus",
    "WishlistItem",
]
