"""
Repositorio de corridas de sync (sync_runs) y leases (sync_leases).
"""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinical_sync.domain.entities.sync_run import SyncRunStatus
from clinical_sync.infrastructure.database.models import SyncLeaseModel, SyncRunModel
from clinical_sync.shared.utils.datetime_utils import ensure_utc, utc_now


class SyncRunRepository:
    """Persistencia de SyncRun y del lease de ejecucion unica."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, **fields) -> SyncRunModel:
        run = SyncRunModel(**fields)
        self.db.add(run)
        await self.db.commit()
        await self.db.refresh(run)
        return run

    async def update(self, run: SyncRunModel, **fields) -> SyncRunModel:
        for key, value in fields.items():
            setattr(run, key, value)
        await self.db.commit()
        await self.db.refresh(run)
        return run

    async def refresh(self, run: SyncRunModel) -> SyncRunModel:
        """Recarga la fila (p.ej. despues de un rollback que la expiro)."""
        await self.db.refresh(run)
        return run

    async def get_by_id(self, run_id: int) -> Optional[SyncRunModel]:
        return await self.db.get(SyncRunModel, run_id)

    async def list_recent(self, limit: int = 10) -> List[SyncRunModel]:
        """Corridas mas recientes primero."""
        result = await self.db.execute(
            select(SyncRunModel)
            .order_by(SyncRunModel.started_at.desc(), SyncRunModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_unfinished_before(self, cutoff: datetime) -> List[SyncRunModel]:
        """Corridas todavia en started/in_progress que arrancaron antes de cutoff."""
        result = await self.db.execute(
            select(SyncRunModel)
            .where(SyncRunModel.status.in_([s.value for s in SyncRunStatus if not s.is_terminal]))
            .where(SyncRunModel.started_at < cutoff)
            .order_by(SyncRunModel.id)
        )
        return list(result.scalars().all())

    async def try_acquire_lease(self, lock_key: str, holder: str, ttl_seconds: int) -> bool:
        """
        Toma el lease si esta libre o vencido.

        Returns:
            bool: False si otra corrida lo tiene vigente
        """
        now = utc_now()
        expires_at = now + timedelta(seconds=ttl_seconds)

        lease = await self.db.get(SyncLeaseModel, lock_key)
        if lease is not None:
            if ensure_utc(lease.expires_at) > now:
                return False
            lease.holder = holder
            lease.acquired_at = now
            lease.expires_at = expires_at
        else:
            self.db.add(
                SyncLeaseModel(
                    lock_key=lock_key,
                    holder=holder,
                    acquired_at=now,
                    expires_at=expires_at,
                )
            )

        try:
            await self.db.commit()
        except IntegrityError:
            # Otra corrida inserto el lease entre el get y el commit
            await self.db.rollback()
            return False
        return True

    async def release_lease(self, lock_key: str, holder: str) -> None:
        """Libera el lease solo si sigue siendo nuestro."""
        await self.db.execute(
            delete(SyncLeaseModel)
            .where(SyncLeaseModel.lock_key == lock_key)
            .where(SyncLeaseModel.holder == holder)
        )
        await self.db.commit()
