"""Tests for local env file parsing."""
import pytest

from kamal_secrets_sync.secrets.domains.env_file import load_local_secrets, parse_env_lines
from kamal_secrets_sync.secrets.domains.errors import SourceMissing


class TestParseEnvLines:
    """Line-level parsing rules."""

    def test_double_quoted_value_is_unquoted(self):
        assert parse_env_lines(['FOO="bar baz"']) == {"FOO": "bar baz"}

    def test_single_quoted_value_is_unquoted(self):
        assert parse_env_lines(["FOO='bar'"]) == {"FOO": "bar"}

    def test_only_one_layer_of_quotes_is_stripped(self):
        assert parse_env_lines(['FOO=""bar""']) == {"FOO": '"bar"'}

    def test_mismatched_quotes_are_kept(self):
        assert parse_env_lines(["FOO=\"bar'"]) == {"FOO": "\"bar'"}

    def test_comments_and_blank_lines_are_ignored(self):
        lines = ["# comment", "   # indented comment", "", "   ", "A=1"]
        assert parse_env_lines(lines) == {"A": "1"}

    def test_key_starting_with_digit_is_ignored(self):
        assert parse_env_lines(["123BAD=x"]) == {}

    def test_lines_without_equals_are_ignored(self):
        assert parse_env_lines(["JUSTAWORD", "B=2"]) == {"B": "2"}

    def test_last_duplicate_wins(self):
        assert parse_env_lines(["A=1", "A=2"]) == {"A": "2"}

    def test_value_keeps_equals_signs_and_inner_spaces(self):
        assert parse_env_lines(["URL=postgres://u:p@h/db?x=1 ", "MSG=a  b"]) == {
            "URL": "postgres://u:p@h/db?x=1",
            "MSG": "a  b",
        }

    def test_trailing_whitespace_after_closing_quote(self):
        assert parse_env_lines(['FOO="bar" \t']) == {"FOO": "bar"}

    def test_spaces_inside_quotes_are_kept(self):
        assert parse_env_lines(['FOO=" bar "']) == {"FOO": " bar "}

    def test_empty_value(self):
        assert parse_env_lines(["EMPTY="]) == {"EMPTY": ""}

    def test_trailing_newlines_are_removed(self):
        assert parse_env_lines(["A=1\r\n", "B=2\n"]) == {"A": "1", "B": "2"}


class TestLoadLocalSecrets:
    """File-level loading."""

    def test_loads_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text('# app secrets\nAPI_KEY="abc"\nDB_PASS=xyz\n', encoding="utf-8")

        assert load_local_secrets(env) == {"API_KEY": "abc", "DB_PASS": "xyz"}

    def test_leading_byte_order_mark_is_ignored(self, tmp_path):
        env = tmp_path / ".env"
        env.write_bytes(b'\xef\xbb\xbfAPI_KEY=abc\nDB_PASS=xyz\n')

        assert load_local_secrets(env) == {"API_KEY": "abc", "DB_PASS": "xyz"}

    def test_missing_file_raises_source_missing(self, tmp_path):
        with pytest.raises(SourceMissing) as exc_info:
            load_local_secrets(tmp_path / "nope.env")

        assert "nope.env" in str(exc_info.value)

    def test_directory_is_treated_as_missing(self, tmp_path):
        with pytest.raises(SourceMissing):
            load_local_secrets(tmp_path)
