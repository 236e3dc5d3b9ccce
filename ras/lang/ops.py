# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Operator table.

This is the single precedence table used by the parser. Higher binding
power binds tighter; left-associative operators recurse at power + 1 and
right-associative ones at the same power. `,` and `$` are punctuation,
not operators.

Signedness modes:
  - NONE: the operator has no signed/unsigned interpretation.
  - AMBIENT: reads the default from the current SignednessContext.
  - SIGNED / UNSIGNED: forced regardless of the default.
  - IMPLICIT_SIGNED / IMPLICIT_UNSIGNED: forced, and the operand is parsed
    with the default overridden (the `+:` / `%:` prefixes).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Fixity(Enum):
	PREFIX = "prefix"
	INFIX = "infix"
	POSTFIX = "postfix"


class Assoc(Enum):
	LEFT = "left"
	RIGHT = "right"


class SignMode(Enum):
	NONE = "none"
	AMBIENT = "ambient"
	SIGNED = "signed"
	UNSIGNED = "unsigned"
	IMPLICIT_SIGNED = "implicit-signed"
	IMPLICIT_UNSIGNED = "implicit-unsigned"


@dataclass(frozen=True)
class OpInfo:
	symbol: str
	name: str
	fixity: Fixity
	power: int
	assoc: Assoc
	sign: SignMode = SignMode.NONE

	@property
	def arity(self) -> int:
		return 2 if self.fixity is Fixity.INFIX else 1

	@property
	def next_power(self) -> int:
		"""Threshold for parsing the right operand."""
		return self.power if self.assoc is Assoc.RIGHT else self.power + 1

	@property
	def sign_sensitive(self) -> bool:
		return self.sign is not SignMode.NONE


MIN_POWER = 0

_L, _R = Assoc.LEFT, Assoc.RIGHT
_N, _A = SignMode.NONE, SignMode.AMBIENT
_S, _U = SignMode.SIGNED, SignMode.UNSIGNED

# (symbol, name, power, assoc, sign)
_PREFIX = [
	("~", "not", 14, _R, _N),
	("!", "lnot", 14, _R, _N),
	("-", "neg", 14, _R, _N),
	("+", "signed", 14, _R, _S),
	("%", "unsigned", 14, _R, _U),
	("++", "preinc", 14, _R, _N),
	("--", "predec", 14, _R, _N),
	("+:", "implicit-signed", 0, _R, SignMode.IMPLICIT_SIGNED),
	("%:", "implicit-unsigned", 0, _R, SignMode.IMPLICIT_UNSIGNED),
]

_POSTFIX = [
	("++", "postinc", 15, _L, _N),
	("--", "postdec", 15, _L, _N),
]

_INFIX = [
	("@", "alias", 15, _L, _N),
	("*", "mul", 13, _L, _A),
	("/", "div", 13, _L, _A),
	("%", "mod", 13, _L, _A),
	("+*", "umul", 13, _L, _U),
	("+/", "udiv", 13, _L, _U),
	("+%", "umod", 13, _L, _U),
	("+", "add", 12, _L, _N),
	("-", "sub", 12, _L, _N),
	("<<", "shl", 11, _L, _N),
	(">>", "shr", 11, _L, _A),
	("+>>", "ushr", 11, _L, _U),
	("&", "and", 10, _L, _N),
	("^", "xor", 9, _L, _N),
	("|", "or", 8, _L, _N),
	("~", "range", 7, _L, _N),
	(":", "join", 6, _R, _N),
	("==", "eq", 5, _L, _N),
	("!=", "ne", 5, _L, _N),
	("<", "lt", 5, _L, _A),
	(">", "gt", 5, _L, _A),
	("<=", "le", 5, _L, _A),
	(">=", "ge", 5, _L, _A),
	("+<", "ult", 5, _L, _U),
	("+>", "ugt", 5, _L, _U),
	("+<=", "ule", 5, _L, _U),
	("+>=", "uge", 5, _L, _U),
	("&&", "land", 4, _L, _N),
	("^^", "lxor", 3, _L, _N),
	("||", "lor", 2, _L, _N),
	("=", "assign", 1, _R, _N),
	("*=", "mul-assign", 1, _R, _A),
	("/=", "div-assign", 1, _R, _A),
	("%=", "mod-assign", 1, _R, _A),
	("+*=", "umul-assign", 1, _R, _U),
	("+/=", "udiv-assign", 1, _R, _U),
	("+%=", "umod-assign", 1, _R, _U),
	("+=", "add-assign", 1, _R, _N),
	("-=", "sub-assign", 1, _R, _N),
	("<<=", "shl-assign", 1, _R, _N),
	(">>=", "shr-assign", 1, _R, _A),
	("+>>=", "ushr-assign", 1, _R, _U),
	("&=", "and-assign", 1, _R, _N),
	("^=", "xor-assign", 1, _R, _N),
	("|=", "or-assign", 1, _R, _N),
	("&&=", "land-assign", 1, _R, _N),
	("^^=", "lxor-assign", 1, _R, _N),
	("||=", "lor-assign", 1, _R, _N),
]


def _build(rows: list[tuple[str, str, int, Assoc, SignMode]], fixity: Fixity) -> dict[str, OpInfo]:
	table: dict[str, OpInfo] = {}
	for symbol, name, power, assoc, sign in rows:
		if symbol in table:
			raise ValueError(f"duplicate {fixity.value} operator {symbol!r}")
		table[symbol] = OpInfo(symbol, name, fixity, power, assoc, sign)
	return table


PREFIX_OPS = _build(_PREFIX, Fixity.PREFIX)
INFIX_OPS = _build(_INFIX, Fixity.INFIX)
POSTFIX_OPS = _build(_POSTFIX, Fixity.POSTFIX)

# Every operator lexeme the lexer can produce.
ALL_SYMBOLS = frozenset(PREFIX_OPS) | frozenset(INFIX_OPS) | frozenset(POSTFIX_OPS)


def prefix_op(symbol: str) -> Optional[OpInfo]:
	return PREFIX_OPS.get(symbol)


def infix_op(symbol: str) -> Optional[OpInfo]:
	return INFIX_OPS.get(symbol)


def postfix_op(symbol: str) -> Optional[OpInfo]:
	return POSTFIX_OPS.get(symbol)


__all__ = [
	"Fixity",
	"Assoc",
	"SignMode",
	"OpInfo",
	"MIN_POWER",
	"PREFIX_OPS",
	"INFIX_OPS",
	"POSTFIX_OPS",
	"ALL_SYMBOLS",
	"prefix_op",
	"infix_op",
	"postfix_op",
]
