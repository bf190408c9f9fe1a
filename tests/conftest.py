"""
Configuración de fixtures para pytest.
"""
import pytest
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from clinical_sync.infrastructure.database.session import Base
from clinical_sync.infrastructure.database import models  # noqa: F401
from clinical_sync.infrastructure.external.drchrono import DrChronoApiError
from clinical_sync.shared.utils.audit_logger import AuditLogger


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Fixture que proporciona una sesión de base de datos para tests.
    Crea una base de datos en memoria para cada test.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(autouse=True)
def _audit_logs_in_tmp(tmp_path, monkeypatch):
    """Los logs de auditoria de cada test van a un directorio temporal."""
    monkeypatch.setattr(AuditLogger, "BASE_LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(AuditLogger, "_initialized", False)
    monkeypatch.setattr(AuditLogger, "_run_loggers", {})
    monkeypatch.setattr(AuditLogger, "_run_handlers", {})


class FakeDrChrono:
    """
    Reemplazo en memoria del cliente DrChrono.

    - data: endpoint -> lista de registros crudos
    - failures: endpoints (o tuplas (endpoint, patient_id)) que fallan
    - si params trae 'patient', filtra por el campo 'patient' del registro
    """

    def __init__(self, data=None, failures=None):
        self.data = data or {}
        self.failures = set(failures or [])
        self.calls = []

    async def fetch_all(self, endpoint, params=None):
        params = dict(params or {})
        self.calls.append((endpoint, params))

        patient = params.get("patient")
        if endpoint in self.failures or (endpoint, patient) in self.failures:
            raise DrChronoApiError(f"DrChrono error 503 en {endpoint}")

        records = list(self.data.get(endpoint, []))
        if patient is not None:
            records = [r for r in records if str(r.get("patient")) == str(patient)]
        return records


@pytest.fixture
def fake_drchrono():
    """Factory de FakeDrChrono."""
    return FakeDrChrono
