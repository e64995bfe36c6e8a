"""MongoDB repository for fetching reportable purchases and manual payments."""

from __future__ import annotations

import os
from typing import Any, Dict, Iterable, List, Optional

from pymongo import MongoClient

from ..utils.config import Config
from ..utils.logging import get_logger
from .date_range import DateRange
from .normalizer import normalize_id

logger = get_logger(__name__)

REPORTABLE_PURCHASE_STATUSES = ["Aprobada", "Despachada", "Entregada"]
EXCLUDED_PAYMENT_METHODS = ["referred", "", None]
REPORTABLE_PAYMENT_STATUS = "approved"

PRODUCT_PROJECTION = {
    "_id": 1,
    "name": 1,
    "price": 1,
    "discount": 1,
    "brand": 1,
    "category": 1,
    "ref": 1,
    "tone": 1,
    "color": 1,
    "costProduct": 1,
}
NAME_PROJECTION = {"_id": 1, "name": 1}
USER_PROJECTION = {"_id": 1, "fullName": 1, "email": 1}


class SalesRepository:
    """
    Reads purchases and manual store payments for a date range.

    Documents come back with their line products populated (including the
    master product behind ``ref``, brand and category names) and with the
    purchaser or last editing admin resolved to a user document.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        db_name: Optional[str] = None,
        connection_url_env_key: Optional[str] = None,
        config: Optional[Config] = None,
        client: Optional[MongoClient] = None,
    ) -> None:
        config = config or Config(".env")
        self._config = config

        if connection_url_env_key:
            self._url = os.getenv(connection_url_env_key) or config.get("mongo_url")
        else:
            self._url = url or config.get("mongo_url")

        self._db = db_name or config.get("mongo_db")
        self._client: Optional[MongoClient] = client
        self._owns_client = client is None
        if not self._url and self._client is None:
            raise ValueError("DB_CONNECTION_URL is required")

    def __enter__(self) -> "SalesRepository":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def connect(self) -> None:
        if self._client is None:
            self._client = MongoClient(self._url, serverSelectionTimeoutMS=5000)

    def disconnect(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def _collection(self, key: str):
        if self._client is None:
            self.connect()
        return self._client[self._db][self._config.get(key)]

    def find_purchases(self, date_range: DateRange) -> List[Dict[str, Any]]:
        """Approved, dispatched or delivered purchases with at least one product."""
        query = {
            "status": {"$in": REPORTABLE_PURCHASE_STATUSES},
            "createdAt": {"$gte": date_range.start_utc, "$lte": date_range.end_utc},
            "products.0": {"$exists": True},
            "paymentMethod": {"$nin": EXCLUDED_PAYMENT_METHODS},
        }
        purchases = list(self._collection("purchases_collection").find(query))
        logger.info(f"Fetched {len(purchases)} purchases between {date_range.date_init} and {date_range.date_end}")
        self._populate_products(purchases, "products")
        self._populate_users(purchases, "user")
        return purchases

    def find_manual_payments(self, date_range: DateRange) -> List[Dict[str, Any]]:
        """Approved manual payments registered as store sales."""
        query = {
            "status": REPORTABLE_PAYMENT_STATUS,
            "createdAt": {"$gte": date_range.start_utc, "$lte": date_range.end_utc},
            "isStore": True,
            "store.0": {"$exists": True},
        }
        payments = list(self._collection("payments_collection").find(query))
        logger.info(f"Fetched {len(payments)} manual payments between {date_range.date_init} and {date_range.date_end}")
        self._populate_products(payments, "store")
        self._populate_users(payments, "lastAdminEdit")
        return payments

    def _fetch_by_ids(self, key: str, ids: Iterable[Any], projection: Dict[str, int]) -> Dict[str, Dict[str, Any]]:
        unique = {}
        for obj_id in ids:
            if obj_id is not None and not isinstance(obj_id, dict):
                unique.setdefault(normalize_id(obj_id), obj_id)
        if not unique:
            return {}
        cursor = self._collection(key).find({"_id": {"$in": list(unique.values())}}, projection)
        return {normalize_id(doc.get("_id")): doc for doc in cursor}

    def _populate_products(self, docs: List[Dict[str, Any]], items_field: str) -> None:
        entries = [entry for doc in docs for entry in doc.get(items_field) or [] if isinstance(entry, dict)]
        products = self._fetch_by_ids(
            "products_collection", (entry.get("id") for entry in entries), PRODUCT_PROJECTION
        )
        masters = self._fetch_by_ids(
            "products_collection", (product.get("ref") for product in products.values()), PRODUCT_PROJECTION
        )
        related = list(products.values()) + list(masters.values())
        brands = self._fetch_by_ids("brands_collection", (p.get("brand") for p in related), NAME_PROJECTION)
        categories = self._fetch_by_ids(
            "categories_collection", (p.get("category") for p in related), NAME_PROJECTION
        )

        def _resolve(product: Dict[str, Any]) -> Dict[str, Any]:
            resolved = dict(product)
            resolved["brand"] = brands.get(normalize_id(product.get("brand")))
            resolved["category"] = categories.get(normalize_id(product.get("category")))
            return resolved

        populated_masters = {key: _resolve(master) for key, master in masters.items()}
        missing = 0
        for entry in entries:
            product = products.get(normalize_id(entry.get("id")))
            if product is None:
                missing += 1
                entry["id"] = None
                continue
            populated = _resolve(product)
            populated["ref"] = populated_masters.get(normalize_id(product.get("ref")))
            entry["id"] = populated
        if missing:
            logger.warning(f"{missing} {items_field} entries reference products that no longer exist")

    def _populate_users(self, docs: List[Dict[str, Any]], field: str) -> None:
        users = self._fetch_by_ids("users_collection", (doc.get(field) for doc in docs), USER_PROJECTION)
        for doc in docs:
            doc[field] = users.get(normalize_id(doc.get(field)))
