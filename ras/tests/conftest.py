# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from typing import Callable

import pytest

from ras.lang.ast import Array, Atom, BlockExpr, Expr, Group, InfixOp, PostfixOp, PrefixOp


def _sexpr(expr: Expr) -> str:
	if isinstance(expr, Atom):
		return expr.token.text
	if isinstance(expr, Group):
		return f"({_sexpr(expr.body)})"
	if isinstance(expr, Array):
		return f"[{_sexpr(expr.body)}]" + ("!" if expr.nonempty else "")
	if isinstance(expr, BlockExpr):
		return "{%d}" % len(expr.block.statements)
	if isinstance(expr, PrefixOp):
		return f"({expr.op.symbol} {_sexpr(expr.operand)})"
	if isinstance(expr, PostfixOp):
		return f"({_sexpr(expr.operand)} {expr.op.symbol})"
	if isinstance(expr, InfixOp):
		return f"({_sexpr(expr.lhs)} {expr.op.symbol} {_sexpr(expr.rhs)})"
	raise TypeError(f"unexpected expression node {expr!r}")


@pytest.fixture
def sexpr() -> Callable[[Expr], str]:
	"""
	Fully parenthesized rendering of an expression tree.

	Operators render as `(lhs op rhs)`, `(op x)` or `(x op)`, so precedence
	and associativity are visible in a single string compare.
	"""
	return _sexpr
