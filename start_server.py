#!/usr/bin/env python3
"""
Storefront Server Startup Script

Starts uvicorn with host and port taken from the server configuration.
"""

import os
import sys
from pathlib import Path

import uvicorn

from storefront.config import get_config
from storefront.structured_logging.enhanced_logging_config import get_logger, setup_enhanced_logging


def main():
    """Start the storefront server with uvicorn."""

    # Set working directory to project root so .env and relative paths resolve
    project_root = Path(__file__).parent
    os.chdir(project_root)

    config = get_config()
    setup_enhanced_logging(config.to_legacy_dict())
    logger = get_logger("storefront.start_server")

    app_module = "storefront.main:app"
    reload = os.getenv("STOREFRONT_RELOAD", "").lower() in {"1", "true", "yes"}
    logger.info("Starting storefront server", host=config.server.host, port=config.server.port, app=app_module)

    try:
        uvicorn_config = uvicorn.Config(
            app_module,
            host=config.server.host,
            port=config.server.port,
            reload=reload,
            reload_excludes=["storefront/tests/*"] if reload else None,
            log_level=config.logging.level.lower(),
            access_log=True,
        )
        server = uvicorn.Server(uvicorn_config)
        server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
        sys.exit(0)
    except Exception as e:
        logger.error("Error starting server", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
