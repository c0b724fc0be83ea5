"""
app/db/collections.py

Purpose: Collection document registry

- One bin per logical table
- Array key inside each document
- Initial document shapes for provisioning
"""

from enum import Enum
from typing import Any, Dict, Optional

from app.core.config import Settings
from utils.constants import DEFAULT_ANNOUNCEMENT, DEFAULT_THEME, DEFAULT_WEBSITE_NAME
from utils.time_utils import utcnow


class Collection(str, Enum):
    """
    Logical collections. The value names the BIN_* setting holding the bin id.
    """
    MAIN = "MAIN"
    USERS = "USERS"
    PRODUCTS = "PRODUCTS"
    CATEGORIES = "CATEGORIES"
    ORDERS = "ORDERS"
    TOPUPS = "TOPUPS"
    BANNERS = "BANNERS"
    PAYMENTS = "PAYMENTS"
    INPUT_TABLES = "INPUT_TABLES"
    BANNED = "BANNED"


# Key of the record array inside each document.
# MAIN is a singleton object and BANNERS holds two arrays (type1/type2).
COLLECTION_KEYS: Dict[Collection, str] = {
    Collection.USERS: "users",
    Collection.PRODUCTS: "products",
    Collection.CATEGORIES: "categories",
    Collection.ORDERS: "orders",
    Collection.TOPUPS: "topups",
    Collection.PAYMENTS: "payments",
    Collection.INPUT_TABLES: "inputTables",
    Collection.BANNED: "bannedUsers",
}

BANNER_KINDS = ("type1", "type2")


def collection_key(collection: Collection) -> Optional[str]:
    return COLLECTION_KEYS.get(collection)


def bin_id(collection: Collection, config: Settings) -> str:
    """
    Resolves the configured bin id for a collection.
    """
    return getattr(config, f"BIN_{collection.value}")


def all_bin_ids(config: Settings) -> Dict[Collection, str]:
    return {collection: bin_id(collection, config) for collection in Collection}


def default_document(collection: Collection) -> Dict[str, Any]:
    """
    Initial (empty) document for a collection.
    """
    if collection is Collection.MAIN:
        now = utcnow().isoformat()
        return {
            "websiteName": DEFAULT_WEBSITE_NAME,
            "websiteLogo": "",
            "announcement": DEFAULT_ANNOUNCEMENT,
            "emojiTriggers": [],
            "theme": DEFAULT_THEME,
            "createdAt": now,
            "updatedAt": now,
        }
    if collection is Collection.BANNERS:
        return {kind: [] for kind in BANNER_KINDS}
    return {COLLECTION_KEYS[collection]: []}
