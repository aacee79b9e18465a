from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.config.settings import DB_TIMEZONE

DB_ZONE = ZoneInfo(DB_TIMEZONE)


def now_trimmed():
    """Retorna datetime atual no timezone configurado, sem microsegundos"""
    return datetime.now(DB_ZONE).replace(microsecond=0)


def today_local() -> date:
    return datetime.now(DB_ZONE).date()


def to_local(value: datetime) -> datetime:
    """
    Converte para o timezone configurado.
    Datetimes sem tzinfo (SQLite) já estão gravados no horário local.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=DB_ZONE)
    return value.astimezone(DB_ZONE)
