"""
Сервисный модуль для инкапсуляции работы с Google Sheets.

Чтение идет одним из двух способов: через values API с API-ключом или через
публичный CSV-экспорт (если ключ не задан). Запись требует сервисного
аккаунта и выполняется через gspread под блокировкой asyncio.Lock.
Кэширования здесь нет: каждый вызов - свежий запрос к Google.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

import gspread
import requests
from google.oauth2.service_account import Credentials
from gspread.exceptions import APIError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from casebot.core.columns import cell_address
from casebot.core.config import Settings, settings
from casebot.core.csv_parser import parse_csv
from casebot.core.exceptions import (
    ConfigurationError,
    InsufficientPermissionError,
    RemoteFetchError,
)

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets/{spreadsheet_id}"
CSV_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export"
CSV_SHEET_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/gviz/tq"
TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
HYPERLINK_FIELDS = "sheets(data(rowData(values(hyperlink,formattedValue))))"

HyperlinkMap = dict[tuple[int, int], str]


def is_retryable_google_error(exception: BaseException) -> bool:
    if isinstance(exception, RemoteFetchError):
        return exception.status_code is None or exception.status_code >= 500
    return isinstance(exception, APIError) and exception.response.status_code >= 500


def google_api_retry(attempts: int):
    """Декоратор повторов для вызовов Google. attempts=1 - без повторов."""
    return retry(
        retry=retry_if_exception(is_retryable_google_error),
        wait=wait_exponential(multiplier=2, min=2, max=30),
        stop=stop_after_attempt(max(attempts, 1)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def split_range(range_spec: str) -> tuple[str, str]:
    """'Лист'!A:H -> ("Лист", "A:H"); A:AG -> ("", "A:AG")."""
    if "!" not in range_spec:
        return "", range_spec
    sheet_part, columns = range_spec.rsplit("!", 1)
    if sheet_part.startswith("'") and sheet_part.endswith("'"):
        sheet_part = sheet_part[1:-1].replace("''", "'")
    return sheet_part, columns


class GoogleSheetsService:
    """
    Класс для чтения и записи ячеек Google-таблицы.
    """

    def __init__(
        self, config: Settings = settings, session: requests.Session | None = None
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._client: gspread.Client | None = None
        self.lock = asyncio.Lock()

        # Число попыток берется из конфигурации этого экземпляра
        retrying = google_api_retry(config.google_api_retry_attempts)
        self._fetch_values = retrying(self._fetch_values)
        self._fetch_csv = retrying(self._fetch_csv)
        self.fetch_hyperlinks = retrying(self.fetch_hyperlinks)
        self._write_cell = retrying(self._write_cell)
        self._write_row = retrying(self._write_row)

        mode = "values API" if self.uses_values_api else "CSV export"
        logger.info(f"Google Sheets reader initialized ({mode}).")

    @property
    def spreadsheet_id(self) -> str:
        return self._config.google_sheet_id

    @property
    def uses_values_api(self) -> bool:
        return bool(self._config.google_api_key)

    @property
    def can_write(self) -> bool:
        return bool(
            self._config.google_credentials_file
            or (
                self._config.google_service_account_email
                and self._config.google_private_key
            )
        )

    # --- Чтение ---

    def _get(self, url: str, params: dict[str, Any] | None = None) -> requests.Response:
        try:
            response = self._session.get(
                url, params=params, timeout=self._config.http_timeout_seconds
            )
        except requests.exceptions.RequestException as e:
            raise RemoteFetchError(None, str(e)) from e

        if not response.ok:
            raise RemoteFetchError(response.status_code, response.text)
        return response

    def fetch_rows(self, range_spec: str) -> list[list[str]]:
        """Возвращает строки диапазона в виде списков строк."""
        if self.uses_values_api:
            return self._fetch_values(range_spec)
        return self._fetch_csv(range_spec)

    def _fetch_values(self, range_spec: str) -> list[list[str]]:
        logger.debug(f"Fetching range {range_spec} via values API.")
        url = (
            SHEETS_API_URL.format(spreadsheet_id=self.spreadsheet_id)
            + "/values/"
            + quote(range_spec, safe="")
        )
        response = self._get(url, params={"key": self._config.google_api_key})
        values = response.json().get("values", [])
        logger.info(f"Fetched {len(values)} rows from {range_spec}.")
        return values

    def _fetch_csv(self, range_spec: str) -> list[list[str]]:
        sheet_name, _ = split_range(range_spec)
        if sheet_name:
            # headers=1: первая строка CSV - всегда строка 1 листа, иначе gviz
            # сам угадывает заголовок и индексы строк расходятся с листом
            url = CSV_SHEET_URL.format(spreadsheet_id=self.spreadsheet_id)
            params = {"tqx": "out:csv", "sheet": sheet_name, "headers": "1"}
        else:
            url = CSV_EXPORT_URL.format(spreadsheet_id=self.spreadsheet_id)
            params = {"format": "csv"}

        logger.debug(f"Fetching CSV export for sheet '{sheet_name or 'first'}'.")
        response = self._get(url, params=params)

        # Закрытая таблица отдает 200 со страницей входа вместо CSV
        if "text/html" in response.headers.get("Content-Type", ""):
            raise RemoteFetchError(
                response.status_code,
                "Spreadsheet is not public, CSV export returned a login page",
            )

        rows = parse_csv(response.text)
        logger.info(f"Fetched {len(rows)} rows via CSV export.")
        return rows

    def fetch_hyperlinks(self, range_spec: str) -> HyperlinkMap:
        """
        Возвращает гиперссылки ячеек диапазона: {(строка, колонка): url}.

        Индексы совпадают с индексами fetch_rows. В режиме CSV ссылки недоступны.
        """
        if not self.uses_values_api:
            return {}

        response = self._get(
            SHEETS_API_URL.format(spreadsheet_id=self.spreadsheet_id),
            params={
                "ranges": range_spec,
                "fields": HYPERLINK_FIELDS,
                "key": self._config.google_api_key,
            },
        )

        hyperlinks: HyperlinkMap = {}
        sheets = response.json().get("sheets") or [{}]
        grids = sheets[0].get("data") or [{}]
        for row_index, row in enumerate(grids[0].get("rowData", [])):
            for column_index, value in enumerate(row.get("values", [])):
                if value.get("hyperlink"):
                    hyperlinks[(row_index, column_index)] = value["hyperlink"]

        logger.info(f"Found {len(hyperlinks)} hyperlinks in {range_spec}.")
        return hyperlinks

    # --- Запись ---

    def _authorize(self) -> gspread.Client:
        config = self._config
        if config.google_credentials_file:
            credentials_file = Path(config.google_credentials_file)
            if not credentials_file.exists():
                logger.error(f"Credentials file not found at: {credentials_file}")
                raise ConfigurationError(
                    f"Google credentials file not found at {credentials_file}"
                )
            return gspread.service_account(filename=str(credentials_file), scopes=SCOPES)

        if config.google_service_account_email and config.google_private_key:
            credentials = Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": config.google_service_account_email,
                    "private_key": config.google_private_key.replace("\\n", "\n"),
                    "token_uri": TOKEN_URI,
                },
                scopes=SCOPES,
            )
            return gspread.authorize(credentials)

        if config.google_api_key:
            raise InsufficientPermissionError(
                "API key gives read-only access, a service account is required for writes"
            )
        raise ConfigurationError("No Google credentials configured for writes")

    def _get_worksheet(self, sheet_name: str) -> gspread.Worksheet:
        if self._client is None:
            logger.info("Initializing gspread client for writes...")
            self._client = self._authorize()
        spreadsheet = self._client.open_by_key(self.spreadsheet_id)
        if not sheet_name:
            return spreadsheet.sheet1
        return spreadsheet.worksheet(sheet_name)

    @staticmethod
    def _write_error(error: APIError) -> Exception:
        status_code = error.response.status_code
        if status_code == 403:
            return InsufficientPermissionError(
                "Service account has no write access to the spreadsheet"
            )
        return RemoteFetchError(status_code, error.response.text)

    def _write_cell(self, sheet_name: str, address: str, value: Any) -> None:
        self._get_worksheet(sheet_name).update_acell(address, value)

    def _write_row(self, sheet_name: str, values: list[Any]) -> None:
        self._get_worksheet(sheet_name).append_row(
            values, value_input_option="USER_ENTERED"
        )

    async def update_cell(
        self, sheet_name: str, row_index: int, column_index: int, value: Any
    ) -> None:
        """Записывает одно значение. row_index - индекс в ответе fetch_rows."""
        address = cell_address(row_index, column_index)
        logger.info(f"Updating cell {address} on sheet '{sheet_name or 'first'}'.")
        async with self.lock:
            logger.debug(f"Lock acquired for updating cell {address}.")
            try:
                await asyncio.to_thread(self._write_cell, sheet_name, address, value)
            except APIError as e:
                logger.error(f"Failed to update cell {address}: {e}", exc_info=True)
                raise self._write_error(e) from e
        logger.info(f"Cell {address} updated successfully.")

    async def append_row(self, sheet_name: str, values: list[Any]) -> None:
        """Добавляет строку в конец листа."""
        logger.info(f"Appending row to sheet '{sheet_name}'.")
        async with self.lock:
            try:
                await asyncio.to_thread(self._write_row, sheet_name, values)
            except APIError as e:
                logger.error(f"Failed to append row: {e}", exc_info=True)
                raise self._write_error(e) from e
        logger.info(f"Row appended to sheet '{sheet_name}'.")
