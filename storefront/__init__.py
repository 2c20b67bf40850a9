"""
Storefront server package.

A product catalog API with JWT authentication and a single shared real-time
chat room for authenticated users.
"""

__version__ = "0.1.0"
