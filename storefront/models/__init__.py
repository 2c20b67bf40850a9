"""
Database models for the storefront server.

Importing this package registers every model on the shared metadata.
"""

from .base import Base, metadata
from .chat_message import ChatMessage
from .product import Product
from .user import User, UserRole

__all__ = ["Base", "metadata", "ChatMessage", "Product", "User", "UserRole"]
