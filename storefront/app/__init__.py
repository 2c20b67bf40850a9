"""Application assembly: factory, lifespan and exception handlers."""
