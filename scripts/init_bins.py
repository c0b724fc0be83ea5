"""
Document store initialization script

Creates one JSONBin bin per collection that has no BIN_* id configured yet,
seeded with the empty document shape, and prints the .env lines to add:
    python scripts/init_bins.py
    python scripts/init_bins.py --all     # recreate every collection
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.core.config import Settings
from app.core.exceptions import StorageError
from app.db.collections import Collection, bin_id, default_document
from app.db.jsonbin import JsonBinClient

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def create_bins(recreate: bool = False) -> dict:
    """Create missing collection bins and return {setting name: bin id}."""
    config = Settings()
    if not config.JSONBIN_API_KEY:
        raise ValueError("❌ JSONBIN_API_KEY must be set in .env file")

    client = JsonBinClient(
        base_url=config.JSONBIN_BASE_URL,
        api_key=config.JSONBIN_API_KEY,
        timeout=config.JSONBIN_TIMEOUT,
    )

    created = {}
    for collection in Collection:
        setting = f"BIN_{collection.value}"
        existing = bin_id(collection, config)

        if existing and not recreate:
            logger.info(f"  ⏭️  {setting} already set ({existing}), skipping")
            continue

        try:
            new_id = await client.create_bin(f"shop-{collection.value.lower()}", default_document(collection))
        except StorageError as e:
            logger.error(f"  ❌ Could not create {setting}: {e.message}")
            raise
        created[setting] = new_id
        logger.info(f"  ✅ {setting} created")

    return created


def main():
    recreate = "--all" in sys.argv[1:]
    created = asyncio.run(create_bins(recreate=recreate))

    if not created:
        logger.info("\n🎉 Every collection already has a bin")
        return

    logger.info("\n📋 Add these lines to your .env:\n")
    for setting, value in created.items():
        print(f"{setting}={value}")


if __name__ == "__main__":
    main()
