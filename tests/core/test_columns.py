"""
Тесты для адресации колонок таблицы.
"""

import pytest

from casebot.core.columns import (
    FULL_RANGE,
    TOTAL_COLUMNS,
    CaseColumn,
    a1_range,
    cell_address,
    column_letter,
)


@pytest.mark.parametrize(
    "index, letter",
    [(0, "A"), (25, "Z"), (26, "AA"), (27, "AB"), (32, "AG"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
)
def test_column_letter(index, letter):
    assert column_letter(index) == letter


def test_column_letter_negative_index():
    with pytest.raises(ValueError):
        column_letter(-1)


def test_case_schema_covers_columns_a_to_ag():
    assert TOTAL_COLUMNS == 33
    assert CaseColumn.HEARING_DATE == 17
    assert FULL_RANGE == "A:AG"


def test_cell_address_is_one_based_row():
    """Строка 0 ответа - заголовок, т.е. строка 1 в таблице."""
    assert cell_address(0, 0) == "A1"
    assert cell_address(5, CaseColumn.HEARING_DATE) == "R6"


def test_a1_range_quotes_sheet_name():
    assert a1_range("👥 Пользователи", 0, 7) == "'👥 Пользователи'!A:H"
    assert a1_range("Дела O'Brien", 0, 1) == "'Дела O''Brien'!A:B"
    assert a1_range("", 0, 32) == "A:AG"
