"""
Преобразование строк Google-таблицы в записи предметной области.

Все функции чистые: на вход - список строк (ячейки), на выход - модели.
Строка без значения в ключевой колонке не считается записью и пропускается.
"""

import logging
import re
from typing import Sequence

from casebot.core.columns import (
    TOTAL_COLUMNS,
    CaseColumn,
    ClientColumn,
    UserColumn,
    column_letter,
)
from casebot.core.dates import parse_date
from casebot.models.case import CaseField, CaseRecord
from casebot.models.client import ClientRecord
from casebot.models.role import map_role_from_sheet
from casebot.models.user import User

logger = logging.getLogger(__name__)

Row = Sequence[str]
HyperlinkMap = dict[tuple[int, int], str]

TELEGRAM_ID_RE = re.compile(r"^-?\d+$")
TRUE_VALUES = {"true", "1", "да", "yes"}
ERROR_MARK = "#ERROR"


def cell(row: Row, index: int) -> str:
    """Значение ячейки или пустая строка, если строка короче."""
    if index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    return str(value)


def is_blank(value: str) -> bool:
    return not value or not value.strip()


def _to_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def _to_int(value: str) -> int:
    try:
        return int(float(value.strip().replace(",", ".")))
    except (ValueError, OverflowError):
        return 0


def build_fields(
    row: Row,
    row_index: int,
    headers: Row | None = None,
    hyperlinks: HyperlinkMap | None = None,
) -> list[CaseField]:
    """Список всех колонок строки: ключ, подпись из заголовка, значение и ссылка."""
    headers = headers or []
    hyperlinks = hyperlinks or {}
    width = max(len(headers), TOTAL_COLUMNS)
    return [
        CaseField(
            key=f"col_{index}",
            label=cell(headers, index).strip() or f"Колонка {column_letter(index)}",
            value=cell(row, index),
            hyperlink=hyperlinks.get((row_index, index)),
        )
        for index in range(width)
    ]


def parse_case_row(
    row: Row,
    row_index: int,
    headers: Row | None = None,
    hyperlinks: HyperlinkMap | None = None,
) -> CaseRecord | None:
    """Строка листа дел -> CaseRecord, или None для пустой строки."""
    if is_blank(cell(row, CaseColumn.ID)):
        return None

    values = {column.field_name: cell(row, column) for column in CaseColumn}
    return CaseRecord(
        row_index=row_index,
        hearing_at=parse_date(values["hearing_date"]),
        filed_at=parse_date(values["filing_date"]),
        fields=build_fields(row, row_index, headers, hyperlinks),
        **values,
    )


def parse_case_rows(
    values: Sequence[Row], hyperlinks: HyperlinkMap | None = None
) -> list[CaseRecord]:
    """Разбирает ответ values API: первая строка - заголовок."""
    if len(values) < 2:
        return []
    headers = values[0]
    cases = []
    for row_index, row in enumerate(values[1:], start=1):
        record = parse_case_row(row, row_index, headers, hyperlinks)
        if record is not None:
            cases.append(record)
    return cases


def parse_user_row(row: Row) -> User | None:
    """
    Строка листа пользователей -> User.

    Строки без email, с ошибкой формулы или с нечисловым Telegram ID пропускаются.
    """
    email = cell(row, UserColumn.EMAIL).strip()
    if not email or ERROR_MARK in email:
        return None

    telegram_id = cell(row, UserColumn.TELEGRAM_ID).strip()
    if not TELEGRAM_ID_RE.match(telegram_id):
        logger.warning(
            f"Skipping user row for '{email}': Telegram ID '{telegram_id}' is not a number."
        )
        return None

    cases = cell(row, UserColumn.CASES)
    return User(
        telegram_id=int(telegram_id),
        email=email,
        name=cell(row, UserColumn.NAME).strip(),
        role=map_role_from_sheet(cell(row, UserColumn.ROLE)),
        email_notifications=_to_bool(cell(row, UserColumn.EMAIL_NOTIFICATIONS)),
        telegram_notifications=_to_bool(cell(row, UserColumn.TELEGRAM_NOTIFICATIONS)),
        sms_notifications=_to_bool(cell(row, UserColumn.SMS_NOTIFICATIONS)),
        cases=[number.strip() for number in cases.split(",") if number.strip()],
    )


def parse_user_rows(values: Sequence[Row], skip_rows: int) -> list[User]:
    """Разбирает лист пользователей, пропуская skip_rows строк заголовка и инструкции."""
    users = []
    for row in values[skip_rows:]:
        user = parse_user_row(row)
        if user is not None:
            users.append(user)
    return users


def parse_client_row(row: Row, row_index: int) -> ClientRecord | None:
    if is_blank(cell(row, ClientColumn.CLIENT_ID)):
        return None

    values = {column.field_name: cell(row, column).strip() for column in ClientColumn}
    values["total_cases"] = _to_int(values["total_cases"])
    values["active_cases"] = _to_int(values["active_cases"])
    return ClientRecord(row_index=row_index, **values)


def parse_client_rows(values: Sequence[Row]) -> list[ClientRecord]:
    clients = []
    for row_index, row in enumerate(values[1:], start=1):
        client = parse_client_row(row, row_index)
        if client is not None:
            clients.append(client)
    return clients
