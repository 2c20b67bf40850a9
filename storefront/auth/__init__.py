"""
Authentication package for the storefront server.

Provides password hashing, access token handling, account persistence,
the FastAPI auth router and dependencies, and the identity resolver used
by the real-time chat handshake.
"""
