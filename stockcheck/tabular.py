"""Delimited-text tokenizer with delimiter sniffing and junk-line filtering."""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_DELIMITER = ","

# Lines made only of delimiter characters and whitespace carry no data.
_SEPARATOR_ONLY_RE = re.compile(r"^[\s,;\t|]*$")

_DATE = r"(?:\d{1,4}[./-]\d{1,2}[./-]\d{1,4}|\d{1,2}\s+[a-z]{3,9}\.?\s+\d{2,4})"

# Report preambles emitted above the real table by stock-system exports.
PREAMBLE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"^\W*from\s+{_DATE}.*?\bto\s+{_DATE}", re.IGNORECASE),
)


@dataclass(frozen=True, slots=True)
class ParsedTable:
    """Rows of raw string cells plus the delimiter they were split on."""

    rows: list[list[str]]
    delimiter: str


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def is_junk_line(line: str) -> bool:
    """Return True for blank, separator-only, or report-preamble lines."""

    if _SEPARATOR_ONLY_RE.match(line):
        return True
    stripped = line.strip()
    return any(pattern.match(stripped) for pattern in PREAMBLE_PATTERNS)


def detect_delimiter(text: str) -> str:
    """Infer the delimiter from the first non-junk line of `text`.

    Tab wins when it outnumbers both other candidates; semicolon wins when it
    strictly outnumbers commas and is at least as frequent as tabs. Anything
    else, including no content at all, falls back to comma.
    """

    sample = ""
    for line in _normalize_newlines(text).split("\n"):
        if not is_junk_line(line):
            sample = line
            break

    commas = sample.count(",")
    semicolons = sample.count(";")
    tabs = sample.count("\t")

    if tabs > commas and tabs > semicolons:
        return "\t"
    if semicolons > commas and semicolons >= tabs:
        return ";"
    return DEFAULT_DELIMITER


def tokenize(text: str, delimiter: str = DEFAULT_DELIMITER) -> list[list[str]]:
    """Split `text` into rows of fields using RFC4180-style quoting.

    A doubled quote inside a quoted field is a literal quote. CRLF and lone CR
    line endings are normalized to LF before scanning. A final row without a
    terminating newline is kept only when it holds more than one field or one
    non-blank field.
    """

    text = _normalize_newlines(text)
    rows: list[list[str]] = []
    row: list[str] = []
    field: list[str] = []
    in_quotes = False
    index = 0
    length = len(text)

    while index < length:
        char = text[index]

        if in_quotes:
            if char == '"':
                if index + 1 < length and text[index + 1] == '"':
                    field.append('"')
                    index += 2
                    continue
                in_quotes = False
            else:
                field.append(char)
            index += 1
            continue

        if char == '"':
            in_quotes = True
        elif char == delimiter:
            row.append("".join(field))
            field = []
        elif char == "\n":
            row.append("".join(field))
            field = []
            rows.append(row)
            row = []
        else:
            field.append(char)
        index += 1

    row.append("".join(field))
    if len(row) > 1 or row[0].strip() != "":
        rows.append(row)
    return rows


def parse(text: str) -> ParsedTable:
    """Tokenize `text` with a sniffed delimiter and drop blank or junk rows."""

    delimiter = detect_delimiter(text)
    rows: list[list[str]] = []
    for row in tokenize(text, delimiter):
        if all(cell.strip() == "" for cell in row):
            continue
        if is_junk_line(delimiter.join(row)):
            continue
        rows.append(row)
    return ParsedTable(rows=rows, delimiter=delimiter)
