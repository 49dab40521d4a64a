#!/usr/bin/env python3
"""Send NEAR through the signer relay.

Reads the bot wallet credentials from the environment and posts a
sign-and-send request to the relay.

Usage:
    python scripts/send_near.py alice.testnet 1.5 [--endpoint URL]

Environment:
    CHAINWEAVER_ACCOUNT_ID    Bot wallet account ID
    CHAINWEAVER_PRIVATE_KEY   Bot wallet private key (ed25519:...)
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from decimal import Decimal
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv

from chainweaver.client import SignerClient, SignerClientError, SignerCredentials
from chainweaver.config import get_settings

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def main() -> int:
    parser = argparse.ArgumentParser(description="Send NEAR via the signer relay")
    parser.add_argument("receiver", type=str, help="Receiver account ID")
    parser.add_argument("amount", type=Decimal, help="Amount in NEAR")
    parser.add_argument("--endpoint", type=str, help="Relay URL (default: SIGNER_ENDPOINT)")
    parser.add_argument("--timeout", type=float, default=30.0, help="Request timeout in seconds")

    args = parser.parse_args()

    account_id = os.getenv("CHAINWEAVER_ACCOUNT_ID")
    private_key = os.getenv("CHAINWEAVER_PRIVATE_KEY")
    credentials = (
        SignerCredentials(account_id=account_id, private_key=private_key)
        if account_id and private_key
        else None
    )

    endpoint = args.endpoint or get_settings().signer_endpoint
    client = SignerClient(endpoint, timeout=args.timeout)

    try:
        result = await client.send_near(credentials, args.receiver, args.amount)
    except SignerClientError as e:
        logger.error(str(e))
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
