"""Site catalog — dataset sites plus sites the operator added by hand.

Dataset sites are read-only. User-added sites are persisted through a
SiteStore and listed ahead of the dataset, the way they were entered.
"""

import json
import logging
import uuid
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from exemptlot.core.types import SiteRecord
from exemptlot.ingestion.sites import load_sites_from_json, site_to_json
from exemptlot.storage.models import UserSiteRow

logger = logging.getLogger(__name__)

DEFAULT_USER_ZONE = "R1 General Residential"


class SiteStore(Protocol):
    async def add(self, site: SiteRecord) -> None: ...

    async def list_sites(self) -> list[SiteRecord]: ...


class InMemorySiteStore:
    def __init__(self):
        self._sites: list[SiteRecord] = []

    async def add(self, site: SiteRecord) -> None:
        self._sites.insert(0, site)

    async def list_sites(self) -> list[SiteRecord]:
        return list(self._sites)


class SqlSiteStore:
    """User sites persisted to the user_sites table as dataset JSON records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def add(self, site: SiteRecord) -> None:
        async with self._session_factory() as session:
            session.add(UserSiteRow(id=site.id, label=site.label, payload=json.dumps(site_to_json(site))))
            await session.commit()

    async def list_sites(self) -> list[SiteRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserSiteRow).order_by(UserSiteRow.created_at.desc(), UserSiteRow.id)
            )
            rows = result.scalars().all()
        return load_sites_from_json({"properties": [json.loads(row.payload) for row in rows]})


def new_user_site(
    label: str = "",
    zone: str = "",
    lot_size_m2: float = 0.0,
    frontage_m: float = 0.0,
    corner_lot: bool = False,
) -> SiteRecord:
    """Build a minimal site record from operator input."""
    return SiteRecord(
        id=f"USR_{uuid.uuid4().hex[:10]}",
        label=label.strip() or "Untitled sample",
        zone=zone.strip() or DEFAULT_USER_ZONE,
        lot_size_m2=float(lot_size_m2 or 0),
        frontage_m=float(frontage_m or 0),
        corner_lot=bool(corner_lot),
    )


class SiteCatalog:
    """Lookup over the loaded dataset and the user-added sites."""

    def __init__(self, dataset_sites: list[SiteRecord], store: SiteStore):
        self._dataset_sites = list(dataset_sites)
        self._store = store
        self._user_sites: list[SiteRecord] = []

    async def load(self) -> None:
        """Read persisted user sites. Call once at startup."""
        self._user_sites = await self._store.list_sites()
        logger.info(
            "Site catalog ready: %d dataset sites, %d user sites",
            len(self._dataset_sites), len(self._user_sites),
        )

    def list_sites(self) -> list[SiteRecord]:
        seen = {s.id for s in self._user_sites}
        return [*self._user_sites, *(s for s in self._dataset_sites if s.id not in seen)]

    def get(self, site_id: str) -> SiteRecord | None:
        for site in self.list_sites():
            if site.id == site_id:
                return site
        return None

    async def add(self, site: SiteRecord) -> SiteRecord:
        await self._store.add(site)
        self._user_sites.insert(0, site)
        logger.info("Added user site %s: %s", site.id, site.label, extra={"site_id": site.id})
        return site
