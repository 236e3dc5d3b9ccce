# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lexer: lazy, single-pass token stream over assembler source.

lark's basic lexer finds token boundaries using the terminals in
grammar.lark; this module turns lark tokens into `Token`s with byte offsets
and decoded literal values. A bad token raises LexError, after which
iteration can continue with the next token.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Optional

from lark import Lark
from lark import Token as LarkToken
from lark.exceptions import UnexpectedCharacters

from ras.core.errors import LexError
from ras.core.span import Span

from .tokens import Token, TokenKind, decode_char, decode_number, decode_quoted

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_LEXER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="start",
)


class Lexer:
	"""
	Iterator of Tokens for one source text.

	The stream is not restartable. To lex again from a known position, build
	a new Lexer with `start=` set to the span of the token to resume at;
	line, column and byte offset then continue from that span.
	"""

	def __init__(self, source: str, *, file: Optional[str] = None, start: Optional[Span] = None) -> None:
		self.source = source
		self.file = file
		self._line_base = 0
		self._column_base = 0
		self._byte_pos = 0
		text = source
		if start is not None and start.offset:
			char_index = len(source.encode("utf-8")[: start.offset].decode("utf-8", errors="ignore"))
			text = source[char_index:]
			self._line_base = (start.line or 1) - 1
			self._column_base = (start.column or 1) - 1
			self._byte_pos = start.offset
		self._text = text
		self._char_pos = 0
		self._stream: Iterator[LarkToken] = _LEXER.lex(text)
		self._done = False

	def __iter__(self) -> "Lexer":
		return self

	def __next__(self) -> Token:
		if self._done:
			raise StopIteration
		try:
			raw = next(self._stream)
		except StopIteration:
			self._done = True
			raise
		except UnexpectedCharacters as err:
			# Unreachable while the BAD terminal matches any character.
			self._done = True
			span = Span(file=self.file, line=err.line + self._line_base, column=err.column)
			raise LexError("invalid character", code="E-LEX-CHARACTER", span=span) from err
		span = self._span_of(raw)
		return self._convert(raw, span)

	def _span_of(self, raw: LarkToken) -> Span:
		start = raw.start_pos or 0
		self._byte_pos += len(self._text[self._char_pos : start].encode("utf-8"))
		self._char_pos = start
		line = raw.line + self._line_base
		column = raw.column + (self._column_base if raw.line == 1 else 0)
		end_line = raw.end_line + self._line_base
		end_column = raw.end_column + (self._column_base if raw.end_line == 1 else 0)
		return Span(
			file=self.file,
			line=line,
			column=column,
			end_line=end_line,
			end_column=end_column,
			offset=self._byte_pos,
		)

	def _convert(self, raw: LarkToken, span: Span) -> Token:
		text = str(raw)
		kind = raw.type
		if kind in ("NEWLINE", "SEMI"):
			return Token(TokenKind.EOS, text, None, span)
		if kind == "IDENT":
			return Token(TokenKind.IDENT, text, text, span)
		if kind == "NUMBER":
			num_kind, value = decode_number(text, span)
			return Token(num_kind, text, value, span)
		if kind == "STRING":
			return Token(TokenKind.STR, text, decode_quoted(text, span), span)
		if kind == "CHAR":
			return Token(TokenKind.CHAR, text, decode_char(text, span), span)
		if kind == "OPERATOR":
			return Token(TokenKind.OPERATOR, text, text, span)
		if kind == "PUNCT":
			return Token(TokenKind.PUNCT, text, text, span)
		raise LexError(f"invalid character {text!r}", code="E-LEX-CHARACTER", span=span, found=repr(text))


def tokenize(source: str, *, file: Optional[str] = None) -> Lexer:
	return Lexer(source, file=file)


__all__ = ["Lexer", "tokenize"]
