from __future__ import annotations

import pytest

from ras.lang import FrontEndConfig, parse_source
from ras.lang.ast import BlockStmt
from ras.lang.scope import ScopeKind


def _codes(src: str, recover: bool = False) -> list[str]:
	result = parse_source(src, config=FrontEndConfig(recover=recover))
	return [d.code for d in result.diagnostics]


def test_named_block_closed_by_name():
	result = parse_source(".block foo\nnop\n.end foo")
	assert result.ok
	(block,) = result.module.statements
	assert isinstance(block, BlockStmt)
	assert block.kind is ScopeKind.BLOCK
	assert block.name == "foo"
	assert [s.name for s in block.body.statements] == ["nop"]


def test_bare_end_closes_any_block():
	result = parse_source(".block foo\n.block bar\n.end\n.end foo")
	assert result.ok
	(outer,) = result.module.statements
	(inner,) = outer.body.statements
	assert inner.name == "bar"


def test_end_with_the_wrong_name():
	assert _codes(".block foo\nnop\n.end bar") == ["E-SCOPE-MISMATCH"]


def test_mismatched_end_still_closes_the_block_in_recover_mode():
	result = parse_source(".block foo\nnop\n.end bar\nret", config=FrontEndConfig(recover=True))
	assert [d.code for d in result.diagnostics] == ["E-SCOPE-MISMATCH"]
	block, ret = result.module.statements
	assert isinstance(block, BlockStmt)
	assert ret.name == "ret"


def test_end_without_a_block():
	assert _codes("nop\n.end") == ["E-SCOPE-UNMATCHED-END"]


def test_block_without_end():
	assert _codes(".block open\nnop") == ["E-SCOPE-UNCLOSED"]


def test_end_cannot_close_a_brace_block():
	result = parse_source(".x { .end }")
	(diag,) = result.diagnostics
	assert diag.code == "E-SCOPE-UNMATCHED-END"
	assert "'{'" in diag.message


@pytest.mark.parametrize("src", [".block a b\n.end", ".block 1\n.end", ".block a\n.end a b"])
def test_block_and_end_take_at_most_one_name(src: str):
	assert _codes(src) == ["E-PARSE-TRAILING"]


def test_labels_belong_to_their_enclosing_block():
	result = parse_source(".block outer\nx: nop\n.end\ny: nop")
	assert result.ok
	x, y = result.labels
	assert result.scopes[x.scope_id].name == "outer"
	assert y.scope_id == 0


def test_scope_errors_carry_the_scope_phase():
	result = parse_source("\n\n.end")
	(diag,) = result.diagnostics
	assert diag.phase == "scope"
	assert diag.span.line == 3
