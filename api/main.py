#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Web Server - REST API for the Translation Memory engine.

Usage:
    uvicorn api.main:app --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI
from pathlib import Path
import time
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from config.logging_config import get_logger
logger = get_logger(__name__)

from api.tm_router import router as tm_router

VERSION = "1.0.0"
start_time = time.time()

# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Translation Memory API",
    description="Fuzzy TM search with context boosting, feedback and version history",
    version=VERSION,
)

app.include_router(tm_router, prefix="/api/tm", tags=["Translation Memory"])
logger.info(f"Translation Memory API {VERSION} ready")


@app.get("/health")
def health():
    """Liveness check."""
    return {
        "status": "healthy",
        "version": VERSION,
        "uptime_seconds": time.time() - start_time,
        "timestamp": time.time(),
    }


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    from config.settings import settings

    settings.print_config()
    logger.info("Starting Translation Memory API Server...")
    logger.info("API Documentation: http://localhost:8000/docs")

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
