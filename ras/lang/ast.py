# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Optional, Union

from ras.core.span import Span

from .ops import OpInfo
from .scope import LabelKind, ScopeKind
from .signedness import Signedness
from .tokens import Token, TokenKind

if TYPE_CHECKING:
	from .macros import MacroDef


class Expr:
	span: Span


@dataclass
class Atom(Expr):
	span: Span
	token: Token

	@property
	def kind(self) -> TokenKind:
		return self.token.kind

	@property
	def value(self) -> Any:
		return self.token.value

	@property
	def is_ident(self) -> bool:
		return self.token.kind is TokenKind.IDENT


@dataclass
class Group(Expr):
	span: Span
	body: Expr


@dataclass
class Array(Expr):
	span: Span
	body: Expr
	nonempty: bool = False


@dataclass
class Block:
	statements: List["Stmt"]
	scope_id: int


@dataclass
class BlockExpr(Expr):
	span: Span
	block: Block


@dataclass
class PrefixOp(Expr):
	span: Span
	op: OpInfo
	operand: Expr
	signedness: Optional[Signedness] = None


@dataclass
class PostfixOp(Expr):
	span: Span
	op: OpInfo
	operand: Expr
	signedness: Optional[Signedness] = None


@dataclass
class InfixOp(Expr):
	span: Span
	op: OpInfo
	lhs: Expr
	rhs: Expr
	signedness: Optional[Signedness] = None


class Arg:
	span: Span


@dataclass
class Placeholder(Arg):
	span: Span


@dataclass
class ExprArg(Arg):
	span: Span
	expr: Expr


@dataclass
class DupArg(Arg):
	"""`value $ count`: `value` repeated `count` times."""

	span: Span
	value: Union[Expr, Placeholder]
	count: Expr


class Stmt:
	span: Span


@dataclass
class Label(Stmt):
	span: Span
	name: str
	kind: LabelKind
	scope_id: int

	@property
	def local(self) -> bool:
		return self.name.startswith(".")


@dataclass
class Define(Stmt):
	span: Span
	macro: "MacroDef"


@dataclass
class MacroDefinition(Stmt):
	span: Span
	macro: "MacroDef"


@dataclass
class Directive(Stmt):
	span: Span
	name: str
	args: List[Arg] = field(default_factory=list)


@dataclass
class BlockStmt(Stmt):
	"""A `.block` region or the expansion of a statement macro."""

	span: Span
	kind: ScopeKind
	name: Optional[str]
	body: Block


@dataclass
class Module:
	statements: List[Stmt]
	file: Optional[str] = None


def walk_stmts(stmts: List[Stmt]):
	"""Yield statements depth-first, descending into block statements and brace blocks."""
	for stmt in stmts:
		yield stmt
		if isinstance(stmt, BlockStmt):
			yield from walk_stmts(stmt.body.statements)
		elif isinstance(stmt, Directive):
			for arg in stmt.args:
				for expr in _arg_exprs(arg):
					for block in _blocks_in(expr):
						yield from walk_stmts(block.statements)


def _arg_exprs(arg: Arg) -> List[Expr]:
	if isinstance(arg, ExprArg):
		return [arg.expr]
	if isinstance(arg, DupArg):
		return [arg.value, arg.count]
	return []


def _blocks_in(expr: Expr):
	if isinstance(expr, BlockExpr):
		yield expr.block
	elif isinstance(expr, (Group, Array)):
		yield from _blocks_in(expr.body)
	elif isinstance(expr, (PrefixOp, PostfixOp)):
		yield from _blocks_in(expr.operand)
	elif isinstance(expr, InfixOp):
		yield from _blocks_in(expr.lhs)
		yield from _blocks_in(expr.rhs)


__all__ = [
	"Expr",
	"Atom",
	"Group",
	"Array",
	"Block",
	"BlockExpr",
	"PrefixOp",
	"PostfixOp",
	"InfixOp",
	"Arg",
	"Placeholder",
	"ExprArg",
	"DupArg",
	"Stmt",
	"Label",
	"Define",
	"MacroDefinition",
	"Directive",
	"BlockStmt",
	"Module",
	"walk_stmts",
]
