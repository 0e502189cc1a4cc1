"""
Сервис для работы с делами.

Дела всегда читаются из таблицы заново (без кэша). Фильтрация, поиск и
статистика вынесены в чистые функции, чтобы их можно было проверять
без обращения к Google.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timezone

from casebot.core.columns import TOTAL_COLUMNS, CaseColumn, a1_range
from casebot.core.config import Settings, settings
from casebot.core.dates import format_hearing_input, hearing_sort_key
from casebot.core.exceptions import RemoteFetchError
from casebot.models.case import CaseRecord
from casebot.models.role import Capability, RoleDefinition
from casebot.models.user import User
from casebot.services.google_api import GoogleSheetsService
from casebot.services.row_parser import parse_case_rows

logger = logging.getLogger(__name__)

ACTIVE_STATUS = "В работе"
COMPLETED_STATUSES = ("Завершено", "Архив")
UPCOMING_WINDOW_DAYS = 14

FILTERABLE_FIELDS = {
    "status": CaseColumn.STATUS,
    "priority": CaseColumn.PRIORITY,
    "lawyer": CaseColumn.LAWYER,
}


def sort_by_hearing(cases: list[CaseRecord]) -> list[CaseRecord]:
    """Сортирует по дате заседания; дела без даты - в конце."""
    return sorted(cases, key=lambda case: hearing_sort_key(case.hearing_at))


def upcoming_hearings(
    cases: list[CaseRecord], now: datetime, limit: int | None = None
) -> list[CaseRecord]:
    """Дела с заседанием позже now, по возрастанию даты. Дела без даты исключаются."""
    upcoming = [case for case in cases if case.hearing_at and case.hearing_at > now]
    upcoming = sort_by_hearing(upcoming)
    return upcoming[:limit] if limit else upcoming


def visible_cases(cases: list[CaseRecord], user: User, role: RoleDefinition) -> list[CaseRecord]:
    """
    Дела, доступные пользователю.

    Без права viewAllCases видны только закрепленные за пользователем дела
    и дела, где он указан ответственным юристом.
    """
    if not role.allows(Capability.VIEW_CASES):
        return []
    if role.allows(Capability.VIEW_ALL_CASES):
        return cases

    assigned = {number.lower() for number in user.cases}
    name = user.name.strip().lower()
    return [
        case
        for case in cases
        if case.case_number.strip().lower() in assigned
        or (name and name in case.lawyer.lower())
    ]


def search_cases(cases: list[CaseRecord], query: str) -> list[CaseRecord]:
    """Поиск по номеру дела, истцу и ответчику без учета регистра."""
    needle = query.strip().lower()
    if not needle:
        return []
    return [
        case
        for case in cases
        if needle in case.case_number.lower()
        or needle in case.plaintiff.lower()
        or needle in case.defendant.lower()
    ]


def find_case(cases: list[CaseRecord], case_number: str) -> CaseRecord | None:
    """Точное совпадение номера дела (без учета регистра и пробелов по краям)."""
    needle = case_number.strip().lower()
    for case in cases:
        if case.case_number.strip().lower() == needle:
            return case
    return None


def distinct_values(cases: list[CaseRecord], field: str) -> list[str]:
    """Непустые значения поля в порядке первого появления."""
    column = FILTERABLE_FIELDS[field]
    values: dict[str, None] = {}
    for case in cases:
        value = getattr(case, column.field_name).strip()
        if value:
            values.setdefault(value, None)
    return list(values)


def filter_cases(
    cases: list[CaseRecord],
    status: str | None = None,
    priority: str | None = None,
    lawyer: str | None = None,
) -> list[CaseRecord]:
    result = cases
    if status:
        result = [case for case in result if case.status.strip() == status]
    if priority:
        result = [case for case in result if case.priority.strip() == priority]
    if lawyer:
        result = [case for case in result if lawyer.lower() in case.lawyer.lower()]
    return result


def case_statistics(cases: list[CaseRecord], now: datetime) -> dict:
    """Сводка по делам для отчета."""
    by_status: Counter[str] = Counter()
    by_lawyer: Counter[str] = Counter()
    active = completed = upcoming = overdue = 0

    for case in cases:
        status = case.status.strip() or "Не указан"
        by_status[status] += 1
        if status == ACTIVE_STATUS:
            active += 1
        elif status in COMPLETED_STATUSES:
            completed += 1

        if case.lawyer.strip():
            by_lawyer[case.lawyer.strip()] += 1

        if case.hearing_at:
            days = (case.hearing_at - now).days
            if case.hearing_at < now:
                overdue += 1
            elif days <= UPCOMING_WINDOW_DAYS:
                upcoming += 1

    return {
        "total": len(cases),
        "active": active,
        "completed": completed,
        "by_status": dict(by_status.most_common()),
        "by_lawyer": dict(by_lawyer.most_common()),
        "upcoming": upcoming,
        "overdue": overdue,
    }


class CaseService:
    """
    Сервис чтения и изменения дел в Google-таблице.
    """

    def __init__(self, google_api: GoogleSheetsService, config: Settings = settings):
        self.google_api = google_api
        self._config = config
        self.cases_range = a1_range(config.sheet_name, 0, TOTAL_COLUMNS - 1)

    def _load_cases(self, with_hyperlinks: bool) -> list[CaseRecord]:
        values = self.google_api.fetch_rows(self.cases_range)
        hyperlinks = {}
        if with_hyperlinks:
            try:
                hyperlinks = self.google_api.fetch_hyperlinks(self.cases_range)
            except RemoteFetchError as e:
                logger.warning(f"Hyperlinks are unavailable, continuing without them: {e}")
        cases = parse_case_rows(values, hyperlinks)
        logger.info(f"Loaded {len(cases)} cases ({len(hyperlinks)} hyperlinks).")
        return cases

    async def get_cases(self, with_hyperlinks: bool = False) -> list[CaseRecord]:
        """Читает все дела. Ошибка чтения пробрасывается как RemoteFetchError."""
        return await asyncio.to_thread(self._load_cases, with_hyperlinks)

    async def get_upcoming_hearings(
        self,
        user: User,
        role: RoleDefinition,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[CaseRecord]:
        now = now or datetime.now(timezone.utc)
        cases = visible_cases(await self.get_cases(), user, role)
        return upcoming_hearings(cases, now, limit or self._config.upcoming_hearings_limit)

    async def update_cell(self, row_index: int, column_index: int, value) -> None:
        """Записывает значение в ячейку дела. Заголовок и колонки вне схемы запрещены."""
        if row_index < 1:
            raise ValueError("Cannot edit header row")
        if not 0 <= column_index < TOTAL_COLUMNS:
            raise ValueError(f"Column index {column_index} is outside the case sheet")
        await self.google_api.update_cell(
            self._config.sheet_name, row_index, column_index, value
        )

    async def set_hearing_date(self, case_number: str, when: datetime) -> CaseRecord | None:
        """
        Записывает дату следующего заседания в дело с указанным номером.

        Возвращает найденное дело или None, если дела с таким номером нет.
        """
        case = find_case(await self.get_cases(), case_number)
        if case is None:
            logger.warning(f"Case '{case_number}' not found for hearing date update.")
            return None

        value = format_hearing_input(when)
        await self.update_cell(case.row_index, CaseColumn.HEARING_DATE, value)
        logger.info(f"Hearing date of case '{case.case_number}' set to {value}.")
        return case.model_copy(update={"hearing_date": value, "hearing_at": when})
