import os
import sys
import logging

import uvicorn

logger = logging.getLogger(__name__)


def run():
    """Start the API with uvicorn. Bind address comes from HOST/PORT."""
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("ENVIRONMENT", "development") == "development"

    logger.info(f"Backend will be available at http://{host}:{port} (docs at /docs)")

    try:
        uvicorn.run("main:app", host=host, port=port, reload=reload, log_level="info")
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    # Allow `python direct_start.py` from any working directory
    sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
    run()
