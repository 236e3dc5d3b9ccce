# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from ras.core.errors import LexError
from ras.lang.lexer import Lexer, tokenize
from ras.lang.ops import ALL_SYMBOLS
from ras.lang.tokens import ESCAPES, TokenKind, encode_escape

IDENT = TokenKind.IDENT
PUNCT = TokenKind.PUNCT
OPERATOR = TokenKind.OPERATOR
EOS = TokenKind.EOS


def _kinds(src: str) -> list[TokenKind]:
	return [tok.kind for tok in tokenize(src)]


def _texts(src: str) -> list[str]:
	return [tok.text for tok in tokenize(src)]


def test_empty_source_has_no_tokens() -> None:
	assert list(tokenize("")) == []


def test_whitespace_and_comments_are_skipped() -> None:
	assert _texts("  \t mov  # trailing comment") == ["mov"]


def test_newline_forms_and_semicolon_end_statements() -> None:
	assert _kinds("a\nb\r\nc\rd;e") == [IDENT, EOS, IDENT, EOS, IDENT, EOS, IDENT, EOS, IDENT]


def test_line_continuation_joins_lines() -> None:
	assert _kinds("mov a, \\\n  b") == [IDENT, IDENT, PUNCT, IDENT]


def test_comment_does_not_swallow_the_newline() -> None:
	assert _kinds("a # note\nb") == [IDENT, EOS, IDENT]


def test_identifiers_allow_dots_underscores_and_non_ascii() -> None:
	toks = list(tokenize(".text _start r1.lo λx"))
	assert [t.text for t in toks] == [".text", "_start", "r1.lo", "λx"]
	assert all(t.kind is IDENT for t in toks)


def test_longest_operator_wins() -> None:
	assert _texts("a +>>= b <<= c ^^ d") == ["a", "+>>=", "b", "<<=", "c", "^^", "d"]


def test_label_markers_are_punctuation_and_colon_is_an_operator() -> None:
	toks = list(tokenize("a:: b:? c:"))
	assert [(t.kind, t.text) for t in toks] == [
		(IDENT, "a"),
		(PUNCT, "::"),
		(IDENT, "b"),
		(PUNCT, ":?"),
		(IDENT, "c"),
		(OPERATOR, ":"),
	]


@pytest.mark.parametrize("symbol", sorted(ALL_SYMBOLS))
def test_every_operator_lexes_as_a_single_token(symbol: str) -> None:
	toks = list(tokenize(f"a {symbol} b"))
	assert [t.text for t in toks] == ["a", symbol, "b"]
	assert toks[1].kind is OPERATOR


def test_positions_are_one_based_with_byte_offsets() -> None:
	toks = list(tokenize("é x\n  yy"))
	assert [(t.text, t.span.line, t.span.column, t.span.offset) for t in toks] == [
		("é", 1, 1, 0),
		("x", 1, 3, 3),
		("\n", 1, 4, 4),
		("yy", 2, 3, 7),
	]


def test_file_name_is_carried_on_spans() -> None:
	tok = next(tokenize("nop", file="boot.s"))
	assert tok.span.file == "boot.s"
	assert str(tok.span) == "boot.s:1:1"


def test_lexer_resumes_from_a_saved_span() -> None:
	src = "first 1\nsecond é 2"
	toks = list(tokenize(src))
	second = toks[3]
	assert second.text == "second"

	resumed = list(Lexer(src, start=second.span))
	assert resumed == toks[3:]


@pytest.mark.parametrize("letter, expected", sorted(ESCAPES.items()))
def test_escape_table_decodes_and_reencodes(letter: str, expected: str) -> None:
	tok = next(tokenize(f'"\\{letter}"'))
	assert tok.kind is TokenKind.STR
	assert tok.value == expected
	assert encode_escape(expected) == "\\" + letter


def test_encode_escape_rejects_unlisted_characters() -> None:
	with pytest.raises(ValueError):
		encode_escape("x")


def test_string_literal_value() -> None:
	tok = next(tokenize('"hi\\tthere"'))
	assert tok.kind is TokenKind.STR
	assert tok.text == '"hi\\tthere"'
	assert tok.value == "hi\tthere"


def test_unlisted_escape_is_reported_at_the_backslash() -> None:
	with pytest.raises(LexError) as info:
		list(tokenize('"a\\q"'))
	assert info.value.code == "E-LEX-ESCAPE"
	assert info.value.span.line == 1
	assert info.value.span.column == 3


def test_hex_escapes_are_not_supported() -> None:
	with pytest.raises(LexError) as info:
		list(tokenize('"\\x41"'))
	assert info.value.code == "E-LEX-ESCAPE"


@pytest.mark.parametrize("src", ['"abc', "'a", '"abc\nd"'])
def test_unterminated_literals(src: str) -> None:
	with pytest.raises(LexError) as info:
		list(tokenize(src))
	assert info.value.code == "E-LEX-UNTERMINATED"
	assert info.value.phase == "lexer"


def test_char_literal_decodes_one_character() -> None:
	tok = next(tokenize("'\\n'"))
	assert tok.kind is TokenKind.CHAR
	assert tok.value == "\n"


@pytest.mark.parametrize("src", ["'ab'", "''"])
def test_char_literal_must_hold_exactly_one_character(src: str) -> None:
	with pytest.raises(LexError) as info:
		list(tokenize(src))
	assert info.value.code == "E-LEX-CHAR"


def test_illegal_character() -> None:
	with pytest.raises(LexError) as info:
		list(tokenize("a ` b"))
	assert info.value.code == "E-LEX-CHARACTER"
	assert info.value.span.column == 3


def test_lexer_continues_after_an_error() -> None:
	lexer = tokenize("a ` b")
	assert next(lexer).text == "a"
	with pytest.raises(LexError):
		next(lexer)
	assert next(lexer).text == "b"
	assert list(lexer) == []
