#!/usr/bin/env python
"""
FastAPI server for FYW Pay
Entry point for uvicorn: `uvicorn api_server:app`
"""
import logging
import os
import sys

from fyw_pay.app import create_app
from fyw_pay.config import get_config

config = get_config()
app = create_app(config)


if __name__ == "__main__":
    import uvicorn

    logger = logging.getLogger(__name__)

    logger.info("=" * 50)
    logger.info("FYW Pay API - Starting Up")
    logger.info("=" * 50)
    logger.info(f"Python version: {sys.version}")
    logger.info(f"Working directory: {os.getcwd()}")
    logger.info(f"ENV: {config.ENV}")
    logger.info(f"DATABASE_URL: {'SET' if config.DATABASE_URL else 'NOT SET'}")
    logger.info(f"Starting FYW Pay API server on port {config.PORT}")
    logger.info(f"Health check endpoint: http://0.0.0.0:{config.PORT}/health")
    logger.info("=" * 50)

    try:
        uvicorn.run(
            app,
            host="0.0.0.0",
            port=config.PORT,
            log_config=None,
            access_log=True,
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        sys.exit(1)
