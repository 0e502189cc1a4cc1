"""
Модели данных, связанные с судебным делом.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CaseField(BaseModel):
    """Одна колонка строки дела для универсального отображения в Mini App."""

    key: str
    label: str
    value: str = ""
    hyperlink: str | None = None


class CaseRecord(BaseModel):
    """
    Модель дела, представляющая строку листа с делами.

    Текстовые поля соответствуют колонкам из casebot.core.columns.CaseColumn,
    пустая ячейка - пустая строка. Поля hearing_at и filed_at содержат
    разобранные даты или None.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    row_index: int = Field(..., description="Index in the fetched values, header is 0")

    id: str = ""
    case_number: str = ""
    court: str = ""
    current_instance: str = ""
    category: str = ""
    status: str = ""
    priority: str = ""
    plaintiff: str = ""
    defendant: str = ""
    claim_subject: str = ""
    dispute_essence: str = ""
    strategy: str = ""
    claim_amount: str = ""
    filing_date: str = ""
    obstructing_acts: str = ""
    correction_date: str = ""
    past_hearings: str = ""
    hearing_date: str = ""
    objection_deadline: str = ""
    first_decision: str = ""
    first_appeal_deadline: str = ""
    appellate_decision: str = ""
    appellate_deadline: str = ""
    cassation_decision: str = ""
    cassation_deadline: str = ""
    supervisory_decision: str = ""
    lawyer: str = ""
    contacts: str = ""
    documents: str = ""
    correspondence: str = ""
    judicial_acts: str = ""
    financial_docs: str = ""
    evidence: str = ""

    hearing_at: datetime | None = None
    filed_at: datetime | None = None
    fields: list[CaseField] = Field(default_factory=list)

    @property
    def title(self) -> str:
        return self.case_number or "Без номера"
