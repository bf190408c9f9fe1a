"""
Upsert Writer.

Unico camino de escritura hacia las tablas de entidades: INSERT ... ON CONFLICT
(external_id) DO UPDATE. Cada escritura corre en su propio savepoint y se
commitea sola: un registro rechazado no arrastra a los demas ni expira los
objetos cargados en la sesion (p.ej. el SyncRun en curso).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from loguru import logger
from sqlalchemy import literal_column, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


@dataclass(frozen=True)
class WriteResult:
    ok: bool
    outcome: Optional[UpsertOutcome] = None
    error: Optional[str] = None


class EntityRecordRepository:
    """Repositorio generico para cualquier modelo con SyncedRecordMixin."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _dialect_name(self) -> str:
        return self.db.get_bind().dialect.name

    async def exists(self, model, external_id: Optional[str]) -> bool:
        """Indica si ya hay una fila local con ese external_id."""
        if not external_id:
            return False
        result = await self.db.execute(
            select(model.id).where(model.external_id == str(external_id)).limit(1)
        )
        return result.first() is not None

    async def list_external_ids(self, model) -> list[str]:
        """Todos los external_id de la tabla, en orden de insercion."""
        result = await self.db.execute(select(model.external_id).order_by(model.id))
        return [row[0] for row in result.all()]

    async def upsert(self, model, row: dict[str, Any], conflict_key: str = "external_id") -> WriteResult:
        """
        UPSERT idempotente por conflict_key.

        - PostgreSQL: RETURNING (xmax = 0) indica si fue INSERT.
        - Otros dialectos: se consulta la clave antes de escribir.

        Nunca lanza: un rechazo del store vuelve como WriteResult(ok=False).
        """
        if conflict_key not in row or row[conflict_key] in (None, ""):
            return WriteResult(ok=False, error=f"Falta '{conflict_key}' en row para UPSERT")

        update_cols = [c for c in row.keys() if c != conflict_key]

        try:
            # Savepoint: un rechazo deshace solo esta fila, la sesion sigue viva
            async with self.db.begin_nested():
                if self._dialect_name() == "postgresql":
                    stmt = postgresql.insert(model).values(**row)
                    set_ = {c: stmt.excluded[c] for c in update_cols}
                    set_["updated_at"] = func.now()
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[conflict_key], set_=set_
                    ).returning(literal_column("(xmax = 0)").label("is_insert"))

                    result = await self.db.execute(stmt)
                    is_insert = bool(result.scalar_one())
                else:
                    is_insert = not await self.exists(model, row[conflict_key])

                    stmt = sqlite.insert(model).values(**row)
                    set_ = {c: stmt.excluded[c] for c in update_cols}
                    set_["updated_at"] = func.now()
                    stmt = stmt.on_conflict_do_update(index_elements=[conflict_key], set_=set_)

                    await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.warning(
                f"UPSERT rechazado en {model.__tablename__} ({row.get(conflict_key)}): {e}"
            )
            return WriteResult(ok=False, error=str(e.__cause__ or e).splitlines()[0])

        await self.db.commit()

        return WriteResult(
            ok=True,
            outcome=UpsertOutcome.INSERTED if is_insert else UpsertOutcome.UPDATED,
        )
