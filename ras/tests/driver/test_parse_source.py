# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import logging

import pytest

from ras.core.errors import ParseError
from ras.lang import FrontEndConfig, parse_source
from ras.lang.ast import Directive
from ras.lang.macros import MacroKind

BROKEN = ".byte 1,,2\n.end\n.byte 3"


def test_clean_source_has_no_diagnostics() -> None:
	result = parse_source("start: .byte 1\n", file="boot.s")
	assert result.ok
	assert result.diagnostics == []
	assert result.module.file == "boot.s"
	assert [label.name for label in result.labels] == ["start"]


def test_strict_mode_stops_at_the_first_error() -> None:
	result = parse_source(BROKEN)
	assert result.module is None
	assert not result.ok
	(diag,) = result.diagnostics
	assert diag.code == "E-PARSE-EXPECTED"
	assert diag.phase == "parser"
	assert diag.severity == "error"
	assert diag.span.line == 1


def test_recover_mode_reports_every_failing_statement() -> None:
	result = parse_source(BROKEN, config=FrontEndConfig(recover=True))
	assert [(d.code, d.span.line) for d in result.diagnostics] == [
		("E-PARSE-EXPECTED", 1),
		("E-SCOPE-UNMATCHED-END", 2),
	]
	assert not result.ok
	(stmt,) = result.module.statements
	assert isinstance(stmt, Directive)
	assert stmt.args[0].expr.value == 3


def test_recover_mode_skips_past_lexical_errors() -> None:
	result = parse_source('a ` b\n.byte "x\n.byte 1', config=FrontEndConfig(recover=True))
	assert [(d.code, d.phase) for d in result.diagnostics] == [
		("E-LEX-CHARACTER", "lexer"),
		("E-LEX-UNTERMINATED", "lexer"),
	]
	assert [s.name for s in result.module.statements] == [".byte"]


def test_recover_mode_reports_unclosed_blocks_at_end_of_input() -> None:
	result = parse_source(".x {\nnop", config=FrontEndConfig(recover=True))
	assert [d.code for d in result.diagnostics] == ["E-PARSE-UNMATCHED"]
	assert result.module.statements == []


def test_macro_errors_are_reported_with_the_macro_phase() -> None:
	result = parse_source(".byte nope\n.define f(a) = a\n.byte f(1, 2)", config=FrontEndConfig(recover=True))
	(diag,) = result.diagnostics
	assert diag.code == "E-MACRO-ARITY"
	assert diag.phase == "macro"
	assert diag.span.line == 3


def test_compilation_units_do_not_share_state() -> None:
	first = parse_source(".define X = 1\n.unsigned\nloop: .byte X")
	second = parse_source(".define X = 2\nloop: .byte a < b")
	assert first.ok and second.ok
	assert first.macros.lookup("X", MacroKind.DEFINE) is not second.macros.lookup("X", MacroKind.DEFINE)
	(cmp,) = [s for s in second.module.statements if isinstance(s, Directive)]
	assert cmp.args[0].expr.signedness.value == "signed"


def test_diagnostic_to_dict() -> None:
	result = parse_source("\n.byte (1]", file="x.s")
	(diag,) = result.diagnostics
	out = diag.to_dict()
	assert out["code"] == "E-PARSE-MISMATCHED"
	assert out["phase"] == "parser"
	assert out["file"] == "x.s"
	assert (out["line"], out["column"]) == (2, 9)
	assert out["offset"] == 9
	assert out["notes"][0] == "'(' opened at x.s:2:7"


def test_error_to_dict_and_human_form() -> None:
	err = ParseError("boom", code="E-PARSE-EXPECTED", found="','", expected="expression")
	assert err.to_dict()["code"] == "E-PARSE-EXPECTED"
	assert str(err) == "<input>: [E-PARSE-EXPECTED] boom found=',' expected=expression"


def test_recursion_limit_must_be_positive() -> None:
	with pytest.raises(ValueError):
		FrontEndConfig(recursion_limit=0)


def test_recovered_errors_are_logged_at_debug(caplog) -> None:
	with caplog.at_level(logging.DEBUG, logger="ras.lang.parser"):
		parse_source(".end", config=FrontEndConfig(recover=True))
	assert any("E-SCOPE-UNMATCHED-END" in rec.getMessage() for rec in caplog.records)


def test_overlong_number_is_a_diagnostic() -> None:
	result = parse_source(".byte " + "9" * 5000)
	assert result.module is None
	(diag,) = result.diagnostics
	assert diag.code == "E-LEX-NUMBER"
	assert diag.phase == "lexer"


@pytest.mark.parametrize("recover", [False, True])
def test_deeply_nested_parentheses_are_a_diagnostic(recover: bool) -> None:
	src = ".byte " + "(" * 2000 + "1" + ")" * 2000 + "\n.byte 2"
	result = parse_source(src, config=FrontEndConfig(recover=recover))
	assert [d.code for d in result.diagnostics] == ["E-PARSE-NESTING"]
	if recover:
		(stmt,) = result.module.statements
		assert stmt.args[0].expr.value == 2
	else:
		assert result.module is None


def test_recover_mode_drops_a_brace_block_holding_a_bad_token() -> None:
	src = ".if 1, {\n.byte \\q\n.byte 2\n}\n.byte 3"
	result = parse_source(src, config=FrontEndConfig(recover=True))
	assert [(d.code, d.span.line) for d in result.diagnostics] == [("E-LEX-CHARACTER", 2)]
	(stmt,) = result.module.statements
	assert stmt.name == ".byte"
	assert stmt.args[0].expr.value == 3


def test_unknown_statement_heads_are_generic_directives() -> None:
	result = parse_source("frob 1")
	assert result.ok
	(stmt,) = result.module.statements
	assert isinstance(stmt, Directive)
	assert stmt.name == "frob"
