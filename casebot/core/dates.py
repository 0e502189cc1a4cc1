"""
Разбор и форматирование дат из ячеек таблицы.

В ячейках встречаются разные форматы: "15.03.2026, 10:00", "15.03.2026 ✅",
"15/03/2026", "2026-03-15". Все они приводятся к datetime в UTC, собранному
из явных компонент, поэтому результат не зависит от часового пояса сервера.
"""

import re
from datetime import date, datetime, timezone

import pytz

DOTTED_DATE_RE = re.compile(
    r"^(\d{1,2})\.(\d{1,2})\.(\d{4})(?:,?\s*(\d{1,2}):(\d{2}))?"
)
SLASHED_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

DONE_MARK = "✅"


def _build(year: str, month: str, day: str, hour: str | None = None, minute: str | None = None) -> datetime | None:
    try:
        return datetime(
            int(year), int(month), int(day), int(hour or 0), int(minute or 0),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def parse_date(text: str | None) -> datetime | None:
    """
    Разбирает дату из ячейки.

    Порядок форматов: DD.MM.YYYY[, HH:MM], DD/MM/YYYY, YYYY-MM-DD,
    затем ISO 8601. Возвращает None, если ни один формат не подошел.
    """
    if not text or not isinstance(text, str):
        return None

    cleaned = text.split(DONE_MARK)[0].strip()
    if not cleaned:
        return None

    match = DOTTED_DATE_RE.match(cleaned)
    if match:
        day, month, year, hour, minute = match.groups()
        return _build(year, month, day, hour, minute)

    match = SLASHED_DATE_RE.match(cleaned)
    if match:
        day, month, year = match.groups()
        return _build(year, month, day)

    match = ISO_DATE_RE.match(cleaned)
    if match:
        year, month, day = match.groups()
        return _build(year, month, day)

    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_date(dt: datetime | None) -> str:
    if not dt:
        return "не указано"
    return dt.strftime("%d.%m.%Y")


def format_datetime(dt: datetime | None) -> str:
    """Дата и время в том виде, в каком они записаны в таблице."""
    if not dt:
        return "не указано"
    if dt.hour == 0 and dt.minute == 0:
        return format_date(dt)
    return dt.strftime("%d.%m.%Y, %H:%M")


def format_hearing_input(dt: datetime) -> str:
    """Каноничная запись даты заседания в ячейку."""
    return dt.strftime("%d.%m.%Y, %H:%M")


def hearing_sort_key(dt: datetime | None) -> tuple[bool, datetime]:
    """Ключ сортировки: дела без даты идут в конец."""
    if dt is None:
        return (True, datetime.max.replace(tzinfo=timezone.utc))
    return (False, dt)


def local_today(now: datetime, tz_name: str) -> date:
    """Текущая календарная дата в часовом поясе отображения."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=pytz.utc)
    return now.astimezone(pytz.timezone(tz_name)).date()


def days_until(event_at: datetime, now: datetime, tz_name: str) -> int:
    """
    Сколько календарных дней осталось до события.

    Дата события берется из компонент (как записано в таблице),
    "сегодня" - в часовом поясе отображения.
    """
    return (event_at.date() - local_today(now, tz_name)).days
