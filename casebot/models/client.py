"""
Модели данных базы клиентов.
"""

import re
from enum import Enum

from pydantic import BaseModel, field_validator

PHONE_RE = re.compile(r"^\+?[0-9\s\-()]{10,20}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ClientType(str, Enum):
    INDIVIDUAL = "Физическое лицо"
    ORGANIZATION = "Юридическое лицо"
    SOLE_PROPRIETOR = "ИП"


class ClientStatus(str, Enum):
    ACTIVE = "Активный"
    ARCHIVED = "Архив"
    VIP = "VIP"


class ClientRecord(BaseModel):
    """
    Клиент, как он записан в таблице.

    Значения не проверяются: строка могла быть отредактирована вручную.
    """

    row_index: int
    client_id: str = ""
    name: str = ""
    client_type: str = ""
    document: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    contact_person: str = ""
    position: str = ""
    added_at: str = ""
    total_cases: int = 0
    active_cases: int = 0
    notes: str = ""
    status: str = ""


class NewClient(BaseModel):
    """Данные нового клиента перед записью в таблицу."""

    client_type: ClientType
    name: str
    document: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    contact_person: str = ""
    position: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Название или ФИО клиента не может быть пустым")
        return value

    @field_validator("phone")
    @classmethod
    def phone_format(cls, value: str) -> str:
        value = value.strip()
        if value and not PHONE_RE.match(value):
            raise ValueError(f"Некорректный телефон: {value}")
        return value

    @field_validator("email")
    @classmethod
    def email_format(cls, value: str) -> str:
        value = value.strip()
        if value and not EMAIL_RE.match(value):
            raise ValueError(f"Некорректный email: {value}")
        return value
