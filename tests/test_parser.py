"""Tests for envvault.dotenv.parser module."""

import pytest

from envvault.dotenv.exceptions import DuplicateKeyError
from envvault.dotenv.models import QuoteStyle
from envvault.dotenv.parser import (
    find_duplicate_keys,
    get_entry,
    get_keys,
    get_value,
    has_key,
    parse,
    parse_assignment,
    parse_lenient,
    parse_value,
    split_lines,
    unescape_double,
)
from envvault.utils.errors import ExitCode


class TestParseBasics:
    def test_simple_assignments(self):
        """Parses KEY=VALUE lines in order."""
        doc = parse("A=1\nB=2\n")

        assert [(e.key, e.value) for e in doc.entries] == [("A", "1"), ("B", "2")]

    def test_source_lines_are_one_based(self):
        """Records the 1-based line number of each entry."""
        doc = parse("\nA=1\n\nB=2\n")

        assert [e.source_line for e in doc.entries] == [2, 4]

    def test_empty_text(self):
        """Empty input yields an empty document."""
        doc = parse("")

        assert doc.entries == ()
        assert doc.raw_lines == ()
        assert doc.original_text == ""

    def test_trailing_newline_does_not_add_line(self):
        """A final newline terminates the last line."""
        assert parse("A=1").entries[0].value == parse("A=1\n").entries[0].value
        assert parse("A=1\n").raw_lines == ()

    def test_export_prefix(self):
        """Recognizes the export prefix."""
        entry = parse("export API_KEY=abc\n").entries[0]

        assert entry.key == "API_KEY"
        assert entry.has_export is True

    def test_key_named_export(self):
        """A key literally named export is not a prefix."""
        entry = parse("export=1\n").entries[0]

        assert entry.key == "export"
        assert entry.has_export is False

    def test_whitespace_around_equals(self):
        """Tolerates whitespace around the key and equals sign."""
        entry = parse("  KEY = value\n").entries[0]

        assert entry.key == "KEY"
        assert entry.value == "value"

    def test_empty_value(self):
        """KEY= yields the empty string."""
        entry = parse("EMPTY=\n").entries[0]

        assert entry.value == ""
        assert entry.quote_style is QuoteStyle.NONE


class TestLineEndings:
    def test_crlf_normalized(self):
        """CRLF line endings are normalized."""
        doc = parse("A=1\r\nB=2\r\n")

        assert [e.value for e in doc.entries] == ["1", "2"]
        assert doc.original_text == "A=1\nB=2\n"

    def test_bare_cr_normalized(self):
        """Bare CR line endings are normalized."""
        doc = parse("A=1\rB=2\r")

        assert [e.key for e in doc.entries] == ["A", "B"]

    def test_split_lines(self):
        assert split_lines("") == []
        assert split_lines("a\nb\n") == ["a", "b"]
        assert split_lines("a\n\n") == ["a", ""]


class TestQuotedValues:
    def test_double_quoted(self):
        """Strips double quotes and records the style."""
        entry = parse('KEY="hello world"\n').entries[0]

        assert entry.value == "hello world"
        assert entry.quote_style is QuoteStyle.DOUBLE

    def test_double_quoted_escapes(self):
        """Unescapes \\n, \\t, \\r, \\" and \\\\ in double quotes."""
        entry = parse('KEY="a\\nb\\tc\\rd\\"e\\\\f"\n').entries[0]

        assert entry.value == 'a\nb\tc\rd"e\\f'

    def test_escaped_backslash_before_n_is_not_newline(self):
        """\\\\n decodes to a backslash followed by n."""
        entry = parse('KEY="a\\\\nb"\n').entries[0]

        assert entry.value == "a\\nb"

    def test_unknown_escape_kept(self):
        """Unknown escapes are kept verbatim."""
        assert unescape_double("a\\xb") == "a\\xb"

    def test_single_quoted(self):
        """Strips single quotes and records the style."""
        entry = parse("KEY='hello world'\n").entries[0]

        assert entry.value == "hello world"
        assert entry.quote_style is QuoteStyle.SINGLE

    def test_single_quoted_only_unescapes_quote(self):
        """Single quotes only unescape \\'."""
        assert parse("KEY='it\\'s'\n").entries[0].value == "it's"
        assert parse("KEY='a\\nb'\n").entries[0].value == "a\\nb"

    def test_hash_inside_quotes_is_literal(self):
        """A # inside quotes is part of the value."""
        assert parse('KEY="a # b"\n').entries[0].value == "a # b"

    def test_comment_after_closing_quote(self):
        """A comment may follow the closing quote."""
        entry = parse('KEY="a # b" # note\n').entries[0]

        assert entry.value == "a # b"
        assert entry.quote_style is QuoteStyle.DOUBLE

    def test_text_after_closing_quote_falls_back_to_unquoted(self):
        """Trailing text after a quote makes the value unquoted."""
        value, style = parse_value('"a"b')

        assert value == '"a"b'
        assert style is QuoteStyle.NONE

    def test_unterminated_quote_is_unquoted(self):
        """An unterminated quote is read as a plain value."""
        value, style = parse_value('"abc')

        assert value == '"abc'
        assert style is QuoteStyle.NONE


class TestUnquotedValues:
    def test_inline_comment_stripped(self):
        """Whitespace-preceded # starts an inline comment."""
        assert parse("KEY=value # comment\n").entries[0].value == "value"

    def test_hash_without_whitespace_is_literal(self):
        """A # not preceded by whitespace belongs to the value."""
        assert parse("KEY=val#ue\n").entries[0].value == "val#ue"
        assert parse("KEY=#abc\n").entries[0].value == "#abc"

    def test_trailing_whitespace_trimmed(self):
        assert parse("KEY=value   \n").entries[0].value == "value"

    def test_backslash_literal(self):
        """Unquoted values do no unescaping."""
        assert parse("KEY=a\\nb\n").entries[0].value == "a\\nb"


class TestComments:
    def test_comment_attached_to_next_key(self):
        """Consecutive comment lines attach to the following key."""
        entry = parse("# one\n#   two  \nA=1\n").entries[0]

        assert entry.comment == "one\ntwo"

    def test_blank_line_detaches_comment(self):
        """A blank line between comment and key keeps the comment free-standing."""
        doc = parse("# note\n\nA=1\n")

        assert doc.entries[0].comment is None
        assert doc.raw_lines == ("# note", "")

    def test_delimiters_are_raw_lines(self):
        """Managed-block delimiters never become comments."""
        doc = parse(
            "# >>> envvault:managed env=dev service=api\nA=1\n# <<< envvault:managed\n"
        )

        assert doc.entries[0].comment is None
        assert doc.raw_lines == (
            "# >>> envvault:managed env=dev service=api",
            "# <<< envvault:managed",
        )

    def test_trailing_comment_kept(self):
        """A comment at the end of the file is preserved as a raw line."""
        doc = parse("A=1\n# the end\n")

        assert doc.raw_lines == ("# the end",)


class TestOpaqueLines:
    def test_unparsable_lines_preserved(self):
        """Lines that are not assignments are kept verbatim."""
        doc = parse("not an assignment\n1BAD=x\nA=1\n")

        assert doc.raw_lines == ("not an assignment", "1BAD=x")
        assert get_keys(doc) == ["A"]

    def test_opaque_line_detaches_comment(self):
        doc = parse("# c\ngarbage\nA=1\n")

        assert doc.entries[0].comment is None
        assert doc.raw_lines == ("# c", "garbage")

    def test_parse_assignment_returns_none_for_non_assignment(self):
        assert parse_assignment("just text") is None


class TestDuplicateKeys:
    def test_duplicate_raises(self):
        """A repeated key raises DuplicateKeyError with every line number."""
        with pytest.raises(DuplicateKeyError) as exc_info:
            parse("A=1\nA=2\n")

        assert exc_info.value.key == "A"
        assert exc_info.value.line_numbers == [1, 2]

    def test_duplicate_message(self):
        with pytest.raises(DuplicateKeyError, match=r'Duplicate key "A" found on lines: 1, 2'):
            parse("A=1\nA=2\n")

    def test_all_collisions_reported(self):
        """Every colliding key is reported, not just the first."""
        with pytest.raises(DuplicateKeyError) as exc_info:
            parse("A=1\nB=1\nA=2\nB=2\nA=3\n")

        assert exc_info.value.key == "A"
        assert exc_info.value.line_numbers == [1, 3, 5]
        assert exc_info.value.collisions == {"A": [1, 3, 5], "B": [2, 4]}

    def test_duplicate_exit_code(self):
        with pytest.raises(DuplicateKeyError) as exc_info:
            parse("A=1\nA=2\n")

        assert exc_info.value.exit_code == ExitCode.PARSE_ERROR

    def test_export_and_plain_collide(self):
        with pytest.raises(DuplicateKeyError):
            parse("A=1\nexport A=2\n")

    def test_find_duplicate_keys(self):
        assert find_duplicate_keys("A=1\nB=2\nA=3\n") == {"A": [1, 3]}
        assert find_duplicate_keys("A=1\n") == {}


class TestParseLenient:
    def test_last_occurrence_wins(self):
        """Duplicates keep the first position and the last value."""
        doc = parse_lenient("A=1\nB=2\nA=3\n")

        assert [(e.key, e.value) for e in doc.entries] == [("A", "3"), ("B", "2")]
        assert doc.entries[0].source_line == 3

    def test_layout_lists_key_once(self):
        doc = parse_lenient("A=1\nA=2\n")

        assert doc.layout == ("A",)


class TestLayout:
    def test_layout_records_positions(self, sample_dotenv):
        """Layout interleaves entry keys with raw-line indexes."""
        doc = parse(sample_dotenv)

        assert doc.raw_lines == ("", "# Free-standing comment", "")
        assert doc.layout == (
            "DATABASE_URL",
            "API_KEY",
            0,
            1,
            2,
            "GREETING",
            "EMPTY",
            "PLAIN",
        )


class TestLookupHelpers:
    def test_get_value(self):
        doc = parse("A=1\n")

        assert get_value(doc, "A") == "1"
        assert get_value(doc, "B") is None
        assert get_value(doc, "B", "default") == "default"

    def test_has_key_and_get_entry(self):
        doc = parse("A=1\n")

        assert has_key(doc, "A") is True
        assert has_key(doc, "B") is False
        assert get_entry(doc, "A").value == "1"
        assert get_entry(doc, "B") is None
