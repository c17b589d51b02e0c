"""
Connectivity check for the agent provider.

Requests a signed URL for the configured agent, opens the agent WebSocket once and
closes it again. Useful after rotating credentials or changing the agent id, before
sending real calls through the bridge.

Usage:
    python check_agent_connection.py [--agent-id AGENT_ID]
"""

import argparse
import asyncio
import os
import sys

import dotenv

dotenv.load_dotenv()

from call_bridge.config.logging_config import configure_logging  # noqa: E402
from call_bridge.exceptions import BridgeError  # noqa: E402
from call_bridge.services.legs import AgentLeg  # noqa: E402
from call_bridge.services.signed_url import SignedUrlClient  # noqa: E402

logger = configure_logging()


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Check the agent provider connection")
    parser.add_argument(
        "--agent-id",
        default=os.getenv("ELEVENLABS_AGENT_ID"),
        help="Agent to connect to (default: ELEVENLABS_AGENT_ID env var)",
    )
    return parser.parse_args()


async def check_connection(agent_id: str, client: SignedUrlClient = None) -> bool:
    """Fetch a signed URL, connect to it and disconnect.

    Returns:
        bool: True if both steps succeeded
    """
    client = client or SignedUrlClient()
    try:
        url = await client.get_signed_url(agent_id)
        logger.info("Obtained signed URL, connecting to agent")
        leg = await AgentLeg.connect(url)
    except BridgeError as e:
        logger.error(f"Agent connection check failed: {e}")
        return False

    await leg.close()
    logger.info("Agent connection check succeeded")
    return True


def main():
    args = parse_args()
    ok = asyncio.run(check_connection(args.agent_id))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
