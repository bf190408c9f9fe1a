"""
Utilidades para manejo de fechas y horas.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    SQLite devuelve datetimes naive aunque la columna sea timezone=True;
    se asumen UTC para poder comparar/restar de forma consistente.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return utc_now()

    @staticmethod
    def from_iso_string(iso_string: str) -> Optional[datetime]:
        """
        Convierte un string ISO 8601 a datetime.
        Acepta el sufijo 'Z' que usa DrChrono.

        Args:
            iso_string: String en formato ISO 8601

        Returns:
            Optional[datetime]: Objeto datetime o None si hay error
        """
        try:
            return datetime.fromisoformat(str(iso_string).replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None

    @staticmethod
    def to_upstream_since(dt: datetime) -> str:
        """
        Serializa un datetime al formato que acepta el filtro `since` de DrChrono.

        Args:
            dt: Objeto datetime

        Returns:
            str: ISO 8601 en UTC, sin microsegundos y con 'Z'
        """
        return ensure_utc(dt).replace(microsecond=0).isoformat().replace("+00:00", "Z")

    @staticmethod
    def elapsed_ms(started_at: datetime, completed_at: datetime) -> int:
        """Milisegundos entre dos instantes (normalizados a UTC)."""
        delta = ensure_utc(completed_at) - ensure_utc(started_at)
        return int(delta.total_seconds() * 1000)
