"""
Разбор CSV-экспорта Google-таблицы.

Поле в двойных кавычках может содержать запятые, переводы строк и
удвоенные кавычки ("" внутри кавычек означает одну кавычку).
"""

QUOTE = '"'


def parse_csv_line(line: str, delimiter: str = ",") -> list[str]:
    """Разбирает одну запись CSV в список значений (пробелы по краям срезаются)."""
    result: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0

    while i < len(line):
        char = line[i]
        if char == QUOTE and in_quotes and i + 1 < len(line) and line[i + 1] == QUOTE:
            current.append(QUOTE)
            i += 1
        elif char == QUOTE:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            result.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    result.append("".join(current).strip())
    return result


def _has_open_quote(text: str) -> bool:
    return text.count(QUOTE) % 2 == 1


def parse_csv(text: str, delimiter: str = ",") -> list[list[str]]:
    """
    Разбирает весь CSV-текст.

    Строки, начатые внутри кавычек, склеиваются со следующими.
    Пустые строки пропускаются.
    """
    rows: list[list[str]] = []
    buffer: str | None = None

    for raw_line in text.split("\n"):
        line = raw_line.rstrip("\r")
        buffer = line if buffer is None else f"{buffer}\n{line}"
        if _has_open_quote(buffer):
            continue
        if buffer.strip():
            rows.append(parse_csv_line(buffer, delimiter))
        buffer = None

    if buffer is not None and buffer.strip():
        rows.append(parse_csv_line(buffer, delimiter))
    return rows
