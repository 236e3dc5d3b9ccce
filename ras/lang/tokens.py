# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Token model and literal decoding.

The lark terminals in grammar.lark only find token boundaries; the helpers
here validate and decode literal text (escape table, radix/exponent numbers)
and raise LexError with the position of the offending character.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Any

from ras.core.errors import LexError
from ras.core.span import Span


class TokenKind(Enum):
	IDENT = "ident"
	INT = "int"
	FLOAT = "float"
	STR = "str"
	CHAR = "char"
	OPERATOR = "operator"
	PUNCT = "punct"
	EOS = "eos"
	# Already parsed expression spliced in by an eager macro parameter.
	EMBED = "embed"


LITERAL_KINDS = frozenset({TokenKind.INT, TokenKind.FLOAT, TokenKind.STR, TokenKind.CHAR})


@dataclass(frozen=True)
class Token:
	kind: TokenKind
	text: str
	value: Any = None
	span: Span = Span()

	def is_op(self, *texts: str) -> bool:
		return self.kind is TokenKind.OPERATOR and (not texts or self.text in texts)

	def is_punct(self, *texts: str) -> bool:
		return self.kind is TokenKind.PUNCT and (not texts or self.text in texts)

	def describe(self) -> str:
		"""Short human form used in error messages."""
		if self.kind is TokenKind.EOS:
			return "end of statement"
		if self.kind is TokenKind.EMBED:
			return "expression"
		return repr(self.text)

	def __str__(self) -> str:
		return self.text


# Escape letter -> decoded character.
ESCAPES: dict[str, str] = {
	"0": "\x00",
	"a": "\x07",
	"b": "\x08",
	"t": "\t",
	"n": "\n",
	"v": "\x0b",
	"f": "\x0c",
	"r": "\r",
	"e": "\x1b",
	"s": " ",
	'"': '"',
	"'": "'",
	"\\": "\\",
	"d": "\x7f",
}

_REVERSE_ESCAPES: dict[str, str] = {ch: "\\" + letter for letter, ch in ESCAPES.items()}


def encode_escape(ch: str) -> str:
	"""Return the escape sequence for a character in the escape table."""
	try:
		return _REVERSE_ESCAPES[ch]
	except KeyError:
		raise ValueError(f"no escape sequence for {ch!r}") from None


def decode_quoted(text: str, span: Span) -> str:
	"""
	Decode a string or character literal, quotes included.

	The lexer's terminal stops at an unescaped closing quote or at end of
	line, so a literal without its closing quote is unterminated.
	"""
	quote = text[0]
	out: list[str] = []
	i = 1
	while i < len(text):
		ch = text[i]
		if ch == quote:
			return "".join(out)
		if ch == "\\" and i + 1 < len(text):
			letter = text[i + 1]
			decoded = ESCAPES.get(letter)
			if decoded is None:
				raise LexError(
					f"invalid escape sequence '\\{letter}'",
					code="E-LEX-ESCAPE",
					span=span.shifted(text[:i]),
					found=repr("\\" + letter),
				)
			out.append(decoded)
			i += 2
			continue
		out.append(ch)
		i += 1
	what = "string" if quote == '"' else "character"
	raise LexError(f"unterminated {what} literal", code="E-LEX-UNTERMINATED", span=span)


def decode_char(text: str, span: Span) -> str:
	value = decode_quoted(text, span)
	if len(value) != 1:
		raise LexError(
			"character literal must contain exactly one character",
			code="E-LEX-CHAR",
			span=span,
			found=repr(text),
		)
	return value


_BASES = {"b": 2, "o": 8, "d": 10, "x": 16}
_MAX_EXPONENT = 1 << 16


def _malformed(message: str, text: str, index: int, span: Span) -> LexError:
	return LexError(message, code="E-LEX-NUMBER", span=span.shifted(text[:index]), found=repr(text))


def decode_number(text: str, span: Span) -> tuple[TokenKind, int | float]:
	"""
	Decode `[base'] significand [p exponent]`.

	The exponent is a signed decimal count of binary powers regardless of the
	radix. Literals with a point or an exponent are FLOAT; the value is
	computed exactly and rounded once.
	"""
	radix = 10
	start = 0
	if len(text) >= 2 and text[1] == "'":
		radix = _BASES[text[0].lower()]
		start = 2
	exp_at = len(text)
	for i in range(start, len(text)):
		if text[i] in "pP":
			exp_at = i
			break

	digits: list[str] = []
	frac_digits = 0
	seen_point = False
	for i in range(start, exp_at):
		ch = text[i]
		if ch == "_":
			continue
		if ch == ".":
			if seen_point:
				raise _malformed("number has more than one decimal point", text, i, span)
			seen_point = True
			continue
		value = int(ch, 36) if ch.isascii() and ch.isalnum() else radix
		if value >= radix:
			raise _malformed(f"invalid digit '{ch}' in base-{radix} number", text, i, span)
		digits.append(ch)
		if seen_point:
			frac_digits += 1
	if not digits:
		raise _malformed("missing digits after base marker", text, start, span)

	try:
		# decimal strings past the interpreter's int conversion limit raise ValueError
		mantissa = int("".join(digits), radix)
	except ValueError:
		raise LexError("number is out of range", code="E-LEX-NUMBER", span=span, found=repr(text)) from None
	if exp_at == len(text):
		if not seen_point:
			return TokenKind.INT, mantissa
		exponent = 0
	else:
		exp_text = text[exp_at + 1 :]
		sign = 1
		if exp_text[:1] in ("+", "-"):
			sign = -1 if exp_text[0] == "-" else 1
			exp_text = exp_text[1:]
		exp_digits = exp_text.replace("_", "")
		if not exp_digits:
			raise _malformed("missing digits after exponent marker", text, exp_at, span)
		if not (exp_digits.isascii() and exp_digits.isdigit()):
			raise _malformed("exponent must be a decimal number", text, exp_at, span)
		if len(exp_digits.lstrip("0")) > len(str(_MAX_EXPONENT)):
			raise LexError("number is out of range", code="E-LEX-NUMBER", span=span, found=repr(text))
		exponent = sign * int(exp_digits)
		if abs(exponent) > _MAX_EXPONENT:
			raise LexError("number is out of range", code="E-LEX-NUMBER", span=span, found=repr(text))

	exact = Fraction(mantissa, radix**frac_digits) * Fraction(2) ** exponent
	try:
		return TokenKind.FLOAT, float(exact)
	except OverflowError:
		raise LexError("number is out of range", code="E-LEX-NUMBER", span=span, found=repr(text)) from None


__all__ = [
	"TokenKind",
	"Token",
	"LITERAL_KINDS",
	"ESCAPES",
	"encode_escape",
	"decode_quoted",
	"decode_char",
	"decode_number",
]
