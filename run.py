"""
Run script for starting the Call Bridge server with optimal latency settings.

This script configures and starts the FastAPI server with WebSocket settings suited
to real-time call audio between the telephony platform and the agent.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys

import dotenv
import uvicorn

dotenv.load_dotenv()

from call_bridge.config.logging_config import configure_logging  # noqa: E402

# Configure logging
logger = configure_logging()


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the Call Bridge server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to run the server on (default: 8000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the server."""
    args = parse_args()

    missing = [
        name for name in ("ELEVENLABS_API_KEY", "ELEVENLABS_AGENT_ID") if not os.getenv(name)
    ]
    if missing:
        for name in missing:
            logger.error(f"{name} environment variable not set")
        sys.exit(1)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"Agent output format: {os.getenv('AGENT_OUTPUT_FORMAT', 'ulaw_8000')}")

    uvicorn.run(
        "call_bridge.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
        # Disable access logs for lower overhead, we have our own logging
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
