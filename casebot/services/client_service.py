"""
Сервис базы клиентов.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime

import pytz

from casebot.core.columns import CLIENTS_COLUMNS, CaseColumn, ClientColumn, a1_range
from casebot.core.config import Settings, settings
from casebot.models.case import CaseRecord
from casebot.models.client import ClientRecord, ClientStatus, ClientType, NewClient
from casebot.services.case_service import COMPLETED_STATUSES, CaseService
from casebot.services.google_api import GoogleSheetsService
from casebot.services.row_parser import parse_client_rows

logger = logging.getLogger(__name__)

# Колонки, по которым идет поиск: ID, название, тип, ИНН/паспорт, телефон, email
SEARCH_COLUMNS = (
    ClientColumn.CLIENT_ID,
    ClientColumn.NAME,
    ClientColumn.CLIENT_TYPE,
    ClientColumn.DOCUMENT,
    ClientColumn.PHONE,
    ClientColumn.EMAIL,
)


def search_clients(clients: list[ClientRecord], query: str) -> list[ClientRecord]:
    needle = query.strip().lower()
    if not needle:
        return []
    return [
        client
        for client in clients
        if needle
        in " ".join(getattr(client, column.field_name) for column in SEARCH_COLUMNS).lower()
    ]


def client_statistics(clients: list[ClientRecord]) -> dict:
    by_type = Counter({client_type.value: 0 for client_type in ClientType})
    for client in clients:
        if client.client_type in by_type:
            by_type[client.client_type] += 1

    return {
        "total": len(clients),
        "active": sum(1 for c in clients if c.status == ClientStatus.ACTIVE.value),
        "vip": sum(1 for c in clients if c.status == ClientStatus.VIP.value),
        "archived": sum(1 for c in clients if c.status == ClientStatus.ARCHIVED.value),
        "by_type": dict(by_type),
        "total_cases": sum(c.total_cases for c in clients),
        "active_cases": sum(c.active_cases for c in clients),
    }


def make_client_id(row_count: int) -> str:
    """ID нового клиента по числу строк листа (вместе с заголовком)."""
    return f"CLI-{row_count:05d}"


def case_row_text(case: CaseRecord) -> str:
    return " ".join(getattr(case, column.field_name) for column in CaseColumn)


def cases_for_client(cases: list[CaseRecord], client_id: str) -> list[CaseRecord]:
    """Дела, в строке которых упоминается ID клиента."""
    client_id = client_id.strip()
    if not client_id:
        return []
    return [case for case in cases if client_id in case_row_text(case)]


def is_active_case(case: CaseRecord) -> bool:
    status = case.status.strip()
    return bool(status) and status not in COMPLETED_STATUSES


def count_client_cases(cases: list[CaseRecord], client_id: str) -> tuple[int, int]:
    """(всего дел, активных дел) клиента. Активное - со статусом, кроме завершенных."""
    linked = cases_for_client(cases, client_id)
    return len(linked), sum(1 for case in linked if is_active_case(case))


def with_case_counts(clients: list[ClientRecord], cases: list[CaseRecord]) -> list[ClientRecord]:
    """Копии клиентов со счетчиками дел, посчитанными по листу дел."""
    updated = []
    for client in clients:
        total, active = count_client_cases(cases, client.client_id)
        updated.append(client.model_copy(update={"total_cases": total, "active_cases": active}))
    return updated


class ClientService:
    def __init__(
        self,
        google_api: GoogleSheetsService,
        case_service: CaseService,
        config: Settings = settings,
    ):
        self.google_api = google_api
        self.case_service = case_service
        self._config = config
        self.clients_range = a1_range(config.clients_sheet_name, 0, CLIENTS_COLUMNS - 1)
        # ID нового клиента считается по числу строк, чтение и запись идут под одной блокировкой
        self._add_lock = asyncio.Lock()

    async def _fetch_values(self) -> list[list[str]]:
        return await asyncio.to_thread(self.google_api.fetch_rows, self.clients_range)

    async def get_clients(self) -> list[ClientRecord]:
        clients = parse_client_rows(await self._fetch_values())
        logger.info(f"Loaded {len(clients)} clients.")
        return clients

    async def find_client(self, client_id: str) -> ClientRecord | None:
        needle = client_id.strip().lower()
        for client in await self.get_clients():
            if client.client_id.lower() == needle:
                return client
        return None

    async def search(self, query: str) -> list[ClientRecord]:
        return search_clients(await self.get_clients(), query)

    async def statistics(self) -> dict:
        """Сводка по базе клиентов. Счетчики дел считаются заново по листу дел."""
        clients = await self.get_clients()
        cases = await self.case_service.get_cases()
        return client_statistics(with_case_counts(clients, cases))

    async def client_cases(self, client_id: str) -> tuple[ClientRecord | None, list[CaseRecord]]:
        """Клиент и все дела, где упоминается его ID. Клиент None, если его нет в базе."""
        client = await self.find_client(client_id)
        if client is None:
            logger.warning(f"Client '{client_id}' not found.")
            return None, []
        cases = cases_for_client(await self.case_service.get_cases(), client.client_id)
        logger.info(f"Found {len(cases)} cases for client {client.client_id}.")
        return client, cases

    async def refresh_statistics(self) -> list[ClientRecord]:
        """
        Пересчитывает колонки "Всего дел" и "Активных дел" по листу дел.

        Записываются только изменившиеся ячейки. Возвращает клиентов
        с актуальными счетчиками.
        """
        clients = await self.get_clients()
        updated = with_case_counts(clients, await self.case_service.get_cases())

        changed = 0
        sheet_name = self._config.clients_sheet_name
        for old, new in zip(clients, updated):
            if (old.total_cases, old.active_cases) == (new.total_cases, new.active_cases):
                continue
            await self.google_api.update_cell(
                sheet_name, new.row_index, ClientColumn.TOTAL_CASES, new.total_cases
            )
            await self.google_api.update_cell(
                sheet_name, new.row_index, ClientColumn.ACTIVE_CASES, new.active_cases
            )
            changed += 1

        logger.info(f"Client statistics refreshed: {changed} of {len(updated)} clients changed.")
        return updated

    async def add_client(self, new_client: NewClient) -> ClientRecord:
        """
        Добавляет клиента в конец листа.

        Данные уже проверены моделью NewClient (формат телефона и email).
        """
        async with self._add_lock:
            values = await self._fetch_values()
            row_count = max(len(values), 1)
            client_id = make_client_id(row_count)
            added_at = datetime.now(pytz.timezone(self._config.display_timezone)).strftime("%d.%m.%Y")

            record = ClientRecord(
                row_index=row_count,
                client_id=client_id,
                name=new_client.name,
                client_type=new_client.client_type.value,
                document=new_client.document,
                phone=new_client.phone,
                email=new_client.email,
                address=new_client.address,
                contact_person=new_client.contact_person,
                position=new_client.position,
                added_at=added_at,
                status=ClientStatus.ACTIVE.value,
            )
            row = [""] * CLIENTS_COLUMNS
            for column in ClientColumn:
                row[column] = getattr(record, column.field_name)

            await self.google_api.append_row(self._config.clients_sheet_name, row)
        logger.info(f"Client {client_id} ({record.name}) added.")
        return record
