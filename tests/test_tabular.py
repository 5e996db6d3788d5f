"""Tokenizer, delimiter sniffing and junk-line tests for the tabular parser."""

from __future__ import annotations

from stockcheck.tabular import detect_delimiter, is_junk_line, parse, tokenize


def test_quoted_field_with_comma_and_escaped_quote() -> None:
    """Quoted commas stay in the field and doubled quotes become one quote."""
    table = parse('a,"b,""c""",d\n1,2,3')
    assert table.rows == [["a", 'b,"c"', "d"], ["1", "2", "3"]]
    assert table.delimiter == ","


def test_detect_delimiter_prefers_semicolon_when_it_outnumbers_commas() -> None:
    assert detect_delimiter("a;b;c\n1;2;3") == ";"
    assert detect_delimiter("a,b,c\n1,2,3") == ","


def test_detect_delimiter_tab_and_tie_rules() -> None:
    """Tab must outnumber both others; a semicolon/comma tie falls back to comma."""
    assert detect_delimiter("a\tb\tc") == "\t"
    assert detect_delimiter("a;b,c") == ","
    assert detect_delimiter("a;b;c\td") == ";"
    assert detect_delimiter("") == ","


def test_detect_delimiter_skips_preamble_and_separator_lines() -> None:
    """The sniffed line is the first one that is not junk."""
    text = "From 01/01/2024 to 31/01/2024\n,,,\n\nStock;Condition;Model\nA1;New;X\n"
    assert detect_delimiter(text) == ";"


def test_is_junk_line_recognizes_blank_separator_and_date_range_lines() -> None:
    assert is_junk_line("")
    assert is_junk_line("   ")
    assert is_junk_line(";;;;")
    assert is_junk_line("From 1 Jan 2024 to 31 Jan 2024")
    assert is_junk_line('"From 2024-01-01 to 2024-01-31",,')
    assert not is_junk_line("From Tikka to Sako,Used")
    assert not is_junk_line("A1,New,X")


def test_tokenize_normalizes_crlf_and_lone_cr() -> None:
    assert tokenize("a,b\r\n1,2\r\n") == [["a", "b"], ["1", "2"]]
    assert tokenize("a,b\r1,2") == [["a", "b"], ["1", "2"]]


def test_tokenize_trailing_row_rules() -> None:
    """A trailing newline does not add an empty row, but a lone final value does."""
    assert tokenize("a,b\n") == [["a", "b"]]
    assert tokenize("a,b\n  ") == [["a", "b"]]
    assert tokenize("a,b\nx") == [["a", "b"], ["x"]]
    assert tokenize("a,b\n,") == [["a", "b"], ["", ""]]


def test_tokenize_keeps_newlines_inside_quotes() -> None:
    assert tokenize('id,note\n1,"line one\nline two"\n') == [["id", "note"], ["1", "line one\nline two"]]


def test_parse_drops_blank_and_junk_rows() -> None:
    """Rows with only blank cells and preamble rows disappear after tokenizing."""
    text = (
        "Stock Report\n"
        "From 01/02/2024 to 29/02/2024\n"
        ",,\n"
        "Stock,Condition,Model\n"
        "A1,New,X\n"
        " , , \n"
        "A2,Used,Y\n"
    )
    table = parse(text)
    assert table.rows == [
        ["Stock Report"],
        ["Stock", "Condition", "Model"],
        ["A1", "New", "X"],
        ["A2", "Used", "Y"],
    ]


def test_parse_tab_delimited_export() -> None:
    table = parse("Stock\tCondition\tModel\nA1\tNew\tX, Deluxe\n")
    assert table.delimiter == "\t"
    assert table.rows[1] == ["A1", "New", "X, Deluxe"]
