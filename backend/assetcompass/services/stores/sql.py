"""
SQLAlchemy-backed stores.

Both stores share the caller's AsyncSession and only flush; committing is
the owner of the session's job (the ``get_db`` request dependency), so a
trade's holding row and ledger row are committed together.
"""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from assetcompass.models.holding import Holding
from assetcompass.models.ledger_entry import LedgerEntry
from assetcompass.services.stores.base import HoldingStore, LedgerStore


class SqlHoldingStore(HoldingStore):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def save(self, holding: Holding) -> Holding:
        self.session.add(holding)
        await self.session.flush()
        return holding

    async def find_by_id(self, holding_id: int) -> Optional[Holding]:
        return await self.session.get(Holding, holding_id)

    async def find_by_owner(self, owner_ref: str) -> list[Holding]:
        stmt = select(Holding).where(Holding.owner_ref == owner_ref).order_by(Holding.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, holding_id: int) -> bool:
        holding = await self.session.get(Holding, holding_id)
        if holding is None:
            return False
        # Explicit delete so this does not depend on the backend enforcing ON DELETE CASCADE
        await self.session.execute(delete(LedgerEntry).where(LedgerEntry.holding_id == holding_id))
        await self.session.delete(holding)
        await self.session.flush()
        return True


class SqlLedgerStore(LedgerStore):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def find_by_holding(self, holding_id: int, newest_first: bool = True) -> list[LedgerEntry]:
        stmt = select(LedgerEntry).where(LedgerEntry.holding_id == holding_id)
        if newest_first:
            stmt = stmt.order_by(LedgerEntry.timestamp.desc(), LedgerEntry.id.desc())
        else:
            stmt = stmt.order_by(LedgerEntry.timestamp.asc(), LedgerEntry.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
