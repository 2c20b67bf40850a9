"""Utility helpers shared by the REST and real-time layers."""
