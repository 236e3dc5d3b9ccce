# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from ras.core.errors import ParseError
from ras.lang.ast import InfixOp, PrefixOp
from ras.lang.config import FrontEndConfig
from ras.lang.ops import INFIX_OPS, PREFIX_OPS
from ras.lang.parser import Parser
from ras.lang.signedness import ResolvedOp, Signedness, SignednessContext, apply_directive, resolve

SIGNED = SignednessContext(Signedness.SIGNED)
UNSIGNED = SignednessContext(Signedness.UNSIGNED)


def test_ambient_operator_reads_the_context() -> None:
	lt = INFIX_OPS["<"]
	assert resolve(lt, SIGNED) == (ResolvedOp(lt, Signedness.SIGNED), SIGNED)
	assert resolve(lt, UNSIGNED) == (ResolvedOp(lt, Signedness.UNSIGNED), UNSIGNED)


def test_forced_operator_ignores_the_context() -> None:
	ult = INFIX_OPS["+<"]
	resolved, ctx = resolve(ult, SIGNED)
	assert resolved.signedness is Signedness.UNSIGNED
	assert ctx is SIGNED


def test_insensitive_operator_has_no_signedness() -> None:
	resolved, _ = resolve(INFIX_OPS["+"], UNSIGNED)
	assert resolved.signedness is None


def test_implicit_prefix_overrides_the_operand_context() -> None:
	resolved, inner = resolve(PREFIX_OPS["%:"], SIGNED)
	assert resolved.signedness is Signedness.UNSIGNED
	assert inner.default is Signedness.UNSIGNED
	assert SIGNED.default is Signedness.SIGNED


def test_directives_return_a_new_context() -> None:
	after = apply_directive(".unsigned", SIGNED)
	assert after.default is Signedness.UNSIGNED
	assert SIGNED.default is Signedness.SIGNED
	assert apply_directive(".signed", after) == SIGNED


def test_unknown_directive_is_rejected() -> None:
	with pytest.raises(ValueError):
		apply_directive(".nop", SIGNED)


def _byte_exprs(src: str, **config):
	stmts = Parser(FrontEndConfig(**config)).parse_module(src).statements
	return [s.args[0].expr for s in stmts if s.name == ".byte"]


def test_directives_switch_the_default_for_later_statements() -> None:
	src = "\n".join(
		[
			".byte a < b",
			".unsigned",
			".byte a < b",
			".byte a +< b",
			".signed",
			".byte a * b",
			".byte %a",
		]
	)
	exprs = _byte_exprs(src)
	assert [e.signedness for e in exprs] == [
		Signedness.SIGNED,
		Signedness.UNSIGNED,
		Signedness.UNSIGNED,
		Signedness.SIGNED,
		Signedness.UNSIGNED,
	]


def test_configured_default_signedness() -> None:
	(expr,) = _byte_exprs(".byte a / b", default_signedness=Signedness.UNSIGNED)
	assert expr.signedness is Signedness.UNSIGNED


def test_implicit_prefix_applies_to_nested_operators() -> None:
	(outer,) = _byte_exprs(".byte %: a < b * c")
	assert isinstance(outer, PrefixOp)
	assert outer.signedness is Signedness.UNSIGNED
	cmp = outer.operand
	assert isinstance(cmp, InfixOp)
	assert cmp.signedness is Signedness.UNSIGNED
	assert isinstance(cmp.rhs, InfixOp)
	assert cmp.rhs.signedness is Signedness.UNSIGNED


def test_implicit_prefix_does_not_leak_past_its_operand() -> None:
	first, second = _byte_exprs(".unsigned\n.byte +: a * b\n.byte a * b")
	assert first.operand.signedness is Signedness.SIGNED
	assert second.signedness is Signedness.UNSIGNED


def test_resolution_never_changes_tree_shape(sexpr) -> None:
	(signed,) = _byte_exprs(".byte a < b * c >> 2")
	(unsigned,) = _byte_exprs(".unsigned\n.byte a < b * c >> 2")
	assert sexpr(signed) == sexpr(unsigned) == "(a < ((b * c) >> 2))"


def test_signedness_directives_take_no_arguments() -> None:
	with pytest.raises(ParseError) as info:
		Parser().parse_module(".signed 1")
	assert info.value.code == "E-PARSE-TRAILING"
