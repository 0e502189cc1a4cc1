"""
Тесты для разбора CSV-экспорта.
"""

from casebot.core.csv_parser import parse_csv, parse_csv_line


def test_parse_csv_line_quotes_and_commas():
    assert parse_csv_line('a,"b,c","d""e",f') == ["a", "b,c", 'd"e', "f"]


def test_parse_csv_line_trims_and_keeps_empty_fields():
    assert parse_csv_line(" a ,, c ,") == ["a", "", "c", ""]


def test_parse_csv_joins_multiline_quoted_field():
    text = 'Номер,Суть\r\nА40-1/2026,"первая строка\nвторая строка"\r\n\r\nА40-2/2026,короткая\n'

    rows = parse_csv(text)

    assert rows == [
        ["Номер", "Суть"],
        ["А40-1/2026", "первая строка\nвторая строка"],
        ["А40-2/2026", "короткая"],
    ]


def test_parse_csv_empty_text():
    assert parse_csv("") == []
    assert parse_csv("\n\n") == []
