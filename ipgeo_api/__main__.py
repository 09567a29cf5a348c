"""Run the lookup service under uvicorn."""

import logging

import uvicorn

from .config import APP_HOST, APP_PORT
from .logging_config import setup_logging

def main():
    setup_logging()
    logging.getLogger("ipgeo").info(f"Starting IP geolocation API on {APP_HOST}:{APP_PORT}")

    uvicorn.run(
        "ipgeo_api.main:app",
        host=APP_HOST,
        port=APP_PORT,
        reload=False,
        access_log=False,
        log_config=None
    )

if __name__ == "__main__":
    main()
