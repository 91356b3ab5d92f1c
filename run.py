#!/usr/bin/env python3
"""Run script for Gatherly."""

import logging
import os

import uvicorn

from gatherly.database.database import init_db

if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    init_db()
    uvicorn.run(
        "gatherly.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
