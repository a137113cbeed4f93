"""
Run script for starting the Voice Bridge server.

Refuses to start unless every required credential and the public domain are
configured, then serves the FastAPI app with WebSocket settings suited to
real-time audio.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys

import uvicorn

from voicebridge.config.logging_config import configure_logging
from voicebridge.config.settings import get_settings


def parse_args(settings):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Start the Voice Bridge server")
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help="Port to run the server on (default: 10000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the server."""
    settings = get_settings()
    args = parse_args(settings)
    logger = configure_logging(args.log_level)

    missing = settings.missing()
    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
        print(f"Error: set {', '.join(missing)} in the environment or a .env file")
        sys.exit(1)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Media endpoint: {settings.media_url}")
    logger.info(f"Turn detection: {settings.turn_detection}")

    uvicorn.run(
        "voicebridge.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
        # Disable access logs, we have our own logging
        access_log=False,
        ws_ping_interval=5,
        ws_ping_timeout=20,
        ws_max_size=16777216,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
