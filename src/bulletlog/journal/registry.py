"""Collection registry — find-or-create for the system-managed buckets.

Future Log and Monthly Log are singletons looked up by type. Year buckets
(``"2025"``) and month archives (``"2025/January"``) are looked up by exact
name among automatic collections. Everything the registry creates is
automatic. Lookups and creations happen inside the caller's session so a
new bucket commits (or rolls back) with the batch that needed it.
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger

from .dates import month_name
from .models import Collection, CollectionType
from .store import StoreSession

FUTURE_LOG_NAME = "Future Log"
MONTHLY_LOG_NAME = "Monthly Log"

_SINGLETON_TYPES = {CollectionType.FUTURE, CollectionType.MONTHLY}


def year_collection_name(year: int) -> str:
    return str(year)


def month_archive_name(year: int, month: int) -> str:
    return f"{year}/{month_name(month)}"


class CollectionRegistry:
    """Get-or-create access to automatic collections."""

    def get_or_create(
        self,
        session: StoreSession,
        collection_type: CollectionType,
        name: str,
        sort_order: int = 0,
    ) -> Collection:
        if collection_type in _SINGLETON_TYPES:
            existing = session.collections(collection_type=collection_type)
        else:
            existing = session.collections(name=name, is_automatic=True)
        if existing:
            return existing[0]

        collection = Collection(
            name=name,
            collection_type=collection_type,
            is_automatic=True,
            sort_order=sort_order,
        )
        session.add_collection(collection)
        logger.info(f"Created automatic collection '{name}' ({collection_type.value})")
        return collection

    def future_log(self, session: StoreSession) -> Collection:
        return self.get_or_create(session, CollectionType.FUTURE, FUTURE_LOG_NAME, sort_order=-1)

    def monthly_log(self, session: StoreSession) -> Collection:
        return self.get_or_create(session, CollectionType.MONTHLY, MONTHLY_LOG_NAME, sort_order=0)

    def year(self, session: StoreSession, year: int) -> Collection:
        return self.get_or_create(session, CollectionType.YEAR, year_collection_name(year), sort_order=year)

    def month_archive(self, session: StoreSession, year: int, month: int) -> Collection:
        return self.get_or_create(
            session,
            CollectionType.MONTH_ARCHIVE,
            month_archive_name(year, month),
            sort_order=month,
        )

    def ensure_automatic_collections(self, session: StoreSession, now: datetime) -> list[Collection]:
        """Make sure Future Log, Monthly Log and the current year bucket exist."""
        return [
            self.future_log(session),
            self.monthly_log(session),
            self.year(session, now.year),
        ]
