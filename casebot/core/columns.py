"""
Конфигурация колонок Google-таблиц.

При изменении структуры таблицы правится только этот модуль: все остальные
модули получают номера колонок через перечисления ниже. Имя элемента
перечисления в нижнем регистре совпадает с именем поля записи.
"""

from enum import IntEnum


class CaseColumn(IntEnum):
    """Колонки листа с делами (A..AG)."""

    # Основные данные
    ID = 0  # A - №
    CASE_NUMBER = 1  # B - Номер дела
    COURT = 2  # C - Наименование суда первой инстанции
    CURRENT_INSTANCE = 3  # D - Текущая инстанция
    CATEGORY = 4  # E - Категория дела
    STATUS = 5  # F - Статус
    PRIORITY = 6  # G - Приоритет
    PLAINTIFF = 7  # H - Истец
    DEFENDANT = 8  # I - Ответчик

    # Детали дела
    CLAIM_SUBJECT = 9  # J - Предмет требований
    DISPUTE_ESSENCE = 10  # K - Суть спора
    STRATEGY = 11  # L - Стратегия, текущие и планируемые мероприятия
    CLAIM_AMOUNT = 12  # M - Сумма требований (руб.)

    # Даты и сроки
    FILING_DATE = 13  # N - Дата подачи
    OBSTRUCTING_ACTS = 14  # O - Судебные акты, препятствующие движению дела
    CORRECTION_DATE = 15  # P - Дата исправления недостатков
    PAST_HEARINGS = 16  # Q - Перечень состоявшихся судебных заседаний
    HEARING_DATE = 17  # R - Дата и время следующего заседания
    OBJECTION_DEADLINE = 18  # S - Срок возражений

    # Судебные решения
    FIRST_DECISION = 19  # T - Решение суда первой инстанции
    FIRST_APPEAL_DEADLINE = 20  # U - Срок обжалования решения первой инстанции
    APPELLATE_DECISION = 21  # V - Постановление апелляционной инстанции
    APPELLATE_DEADLINE = 22  # W - Срок обжалования апелляционного постановления
    CASSATION_DECISION = 23  # X - Постановление кассационной инстанции
    CASSATION_DEADLINE = 24  # Y - Срок обжалования кассационного постановления
    SUPERVISORY_DECISION = 25  # Z - Судебный акт надзорной инстанции

    # Юристы и документы
    LAWYER = 26  # AA - Ответственный юрист
    CONTACTS = 27  # AB - Контакты представителей
    DOCUMENTS = 28  # AC - Документы по делу
    CORRESPONDENCE = 29  # AD - Переписка
    JUDICIAL_ACTS = 30  # AE - Судебные акты
    FINANCIAL_DOCS = 31  # AF - Финансовые документы
    EVIDENCE = 32  # AG - Доказательства

    @property
    def field_name(self) -> str:
        return self.name.lower()


class UserColumn(IntEnum):
    """Колонки листа пользователей (A..H)."""

    EMAIL = 0
    ROLE = 1
    NAME = 2
    TELEGRAM_ID = 3
    EMAIL_NOTIFICATIONS = 4
    TELEGRAM_NOTIFICATIONS = 5
    SMS_NOTIFICATIONS = 6
    CASES = 7


class ClientColumn(IntEnum):
    """Колонки листа с базой клиентов (A..N)."""

    CLIENT_ID = 0
    NAME = 1
    CLIENT_TYPE = 2
    DOCUMENT = 3
    PHONE = 4
    EMAIL = 5
    ADDRESS = 6
    CONTACT_PERSON = 7
    POSITION = 8
    ADDED_AT = 9
    TOTAL_CASES = 10
    ACTIVE_CASES = 11
    NOTES = 12
    STATUS = 13

    @property
    def field_name(self) -> str:
        return self.name.lower()


def column_letter(index: int) -> str:
    """
    Возвращает буквенное обозначение колонки по индексу (0-based).

    Нумерация без нуля: A..Z, AA..AZ, BA.. и т.д.
    """
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    letters = ""
    number = index + 1
    while number > 0:
        number, remainder = divmod(number - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def cell_address(row_index: int, column_index: int) -> str:
    """A1-адрес ячейки по индексам из ответа values API (строка 0 - заголовок)."""
    return f"{column_letter(column_index)}{row_index + 1}"


def a1_range(sheet_name: str, first_column: int, last_column: int) -> str:
    """Диапазон по колонкам, например 'Лист'!A:H. Пустое имя - первый лист."""
    columns = f"{column_letter(first_column)}:{column_letter(last_column)}"
    if not sheet_name:
        return columns
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{columns}"


TOTAL_COLUMNS = len(CaseColumn)
FULL_RANGE = a1_range("", 0, TOTAL_COLUMNS - 1)
USERS_COLUMNS = len(UserColumn)
CLIENTS_COLUMNS = len(ClientColumn)
