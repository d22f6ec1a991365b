"""
Utilidades para manejo de instantes de tiempo.

El CRM mezcla formatos: la busqueda devuelve `createdAt`/`updatedAt` como ISO 8601
y los filtros esperan epoch en milisegundos. Todo se normaliza a datetime UTC aware.
"""
from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    Los datetimes naive se asumen UTC (asi los guarda SQLite en tests).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Convierte un datetime a epoch en milisegundos (formato de filtros del CRM)."""
    return int(ensure_utc(dt).timestamp() * 1000)


def from_epoch_ms(value: Union[int, float]) -> datetime:
    """Convierte epoch en milisegundos a datetime UTC."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def to_iso_z(dt: datetime) -> str:
    """
    Serializa a ISO 8601 con sufijo 'Z'.

    Se conservan milisegundos porque el sink ordena acciones por fecha.
    """
    dt_utc = ensure_utc(dt)
    return dt_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_instant(value: Union[str, int, float, datetime, None]) -> Optional[datetime]:
    """
    Parsea un instante del CRM o del store de checkpoints.

    Acepta datetime, epoch ms (numero o string numerico) e ISO 8601 (con o sin 'Z').
    Retorna None si el valor es vacio.

    Raises:
        ValueError: si el valor no es interpretable como instante
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        return from_epoch_ms(value)

    raw = str(value).strip()
    if raw.lstrip("-").isdigit():
        return from_epoch_ms(int(raw))
    return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
