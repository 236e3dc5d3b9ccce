# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Macro definitions and token-tree expansion.

Two kinds of macro share one table, keyed by (name, kind):

  - `.define name[(params)] = tokens` expression macros. An object-like
    define expands wherever its name appears; a function-like define
    expands only when its name is followed by a `( )` group.
  - `.macro name [params]` ... `.end` statement macros, invoked by naming
    them at the head of a statement. The parser owns their scope handling;
    this module binds arguments and substitutes the body lines.

Arguments bind positionally, then by name (`param = tokens`), then from
defaults. Lazy parameters substitute the raw argument trees. Eager
parameters (`!name`) are expanded and parsed first and spliced in as one
EMBED leaf. A variadic parameter (`*name`, last only) captures the remaining
positional arguments and their commas.

Expansion re-scans its output until no invocation is left. Depth is tracked
per tree on an explicit work stack and bounded by `recursion_limit`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Iterator, Optional, Sequence, Tuple

from ras.core.errors import (
	ArityError,
	DuplicateDefinitionError,
	MacroError,
	RecursionLimitError,
	UnknownMacroError,
	VariadicPositionError,
)
from ras.core.span import Span

from .config import DEFAULT_RECURSION_LIMIT
from .tokens import Token, TokenKind
from .tree import (
	MAX_GROUP_NESTING,
	Line,
	TokenGroup,
	TokenLeaf,
	TokenTree,
	is_ident,
	is_op,
	join_args,
	render,
	split_args,
)

if TYPE_CHECKING:
	from .ast import Expr


class MacroKind(Enum):
	DEFINE = "define"
	MACRO = "macro"


@dataclass(frozen=True)
class MacroParam:
	name: str
	eager: bool = False
	variadic: bool = False
	default: Optional[Tuple[TokenTree, ...]] = None
	span: Span = Span()

	@property
	def required(self) -> bool:
		return self.default is None and not self.variadic


def validate_params(params: Sequence[MacroParam], span: Optional[Span] = None) -> None:
	seen: set[str] = set()
	for index, param in enumerate(params):
		where = param.span if param.span.line is not None else span
		if param.name in seen:
			raise MacroError(f"duplicate macro parameter '{param.name}'", code="E-MACRO-PARAM", span=where)
		seen.add(param.name)
		if param.variadic:
			if index != len(params) - 1:
				raise VariadicPositionError(
					f"variadic parameter '*{param.name}' must be the last parameter",
					span=where,
				)
			if param.default is not None:
				raise MacroError(
					f"variadic parameter '*{param.name}' cannot have a default",
					code="E-MACRO-PARAM",
					span=where,
				)


@dataclass(frozen=True)
class MacroDef:
	"""
	A stored macro definition. Never mutated once defined.

	`body` holds statement lines; a `.define` has exactly one line (possibly
	empty), a `.macro` has the lines captured up to its `.end`.
	"""

	name: str
	kind: MacroKind
	params: Tuple[MacroParam, ...] = ()
	body: Tuple[Line, ...] = ()
	function_like: bool = False
	span: Span = Span()

	def __post_init__(self) -> None:
		validate_params(self.params, self.span)

	@property
	def param_names(self) -> frozenset[str]:
		return frozenset(param.name for param in self.params)

	def describe(self) -> str:
		return f"{self.kind.value} '{self.name}'"


class MacroTable:
	"""Definitions for one compilation unit. Append-only: redefining is an error."""

	def __init__(self) -> None:
		self._defs: Dict[Tuple[str, MacroKind], MacroDef] = {}

	def define(self, macro: MacroDef) -> None:
		key = (macro.name, macro.kind)
		prior = self._defs.get(key)
		if prior is not None:
			raise DuplicateDefinitionError(
				f"{macro.describe()} is already defined",
				span=macro.span,
				notes=[f"previous definition at {prior.span}"],
			)
		self._defs[key] = macro

	def lookup(self, name: str, kind: MacroKind) -> Optional[MacroDef]:
		return self._defs.get((name, kind))

	def require(self, name: str, kind: MacroKind, span: Optional[Span] = None) -> MacroDef:
		"""
		Like lookup, but a missing macro is an UnknownMacroError.

		Only explicit requests such as MacroExpander.expand_call come through
		here. The parser uses lookup: an identifier naming no `.define` stays
		an identifier, and a statement head naming no `.macro` is parsed as a
		generic directive or instruction, so unknown heads are never errors.
		"""
		macro = self._defs.get((name, kind))
		if macro is None:
			raise UnknownMacroError(f"unknown {kind.value} '{name}'", span=span, found=repr(name))
		return macro

	def __contains__(self, key: Tuple[str, MacroKind]) -> bool:
		return key in self._defs

	def __len__(self) -> int:
		return len(self._defs)

	def __iter__(self) -> Iterator[MacroDef]:
		return iter(self._defs.values())


# Parses already expanded trees as one full expression at the given depth.
EagerParser = Callable[[Sequence[TokenTree], int], "Expr"]

Bindings = Dict[str, Tuple[TokenTree, ...]]


def substitute(trees: Sequence[TokenTree], bindings: Bindings) -> list[TokenTree]:
	"""Replace parameter-named identifier leaves, at any depth, with their bound trees."""
	out: list[TokenTree] = []
	for tree in trees:
		if isinstance(tree, TokenGroup):
			out.append(TokenGroup(tree.open, tuple(substitute(tree.children, bindings)), tree.close))
		elif tree.token.kind is TokenKind.IDENT and tree.token.text in bindings:
			out.extend(bindings[tree.token.text])
		else:
			out.append(tree)
	return out


def _named_arg(arg: Sequence[TokenTree], names: frozenset[str]) -> Optional[Tuple[str, Tuple[TokenTree, ...]]]:
	if len(arg) >= 2 and is_ident(arg[0]) and is_op(arg[1], "="):
		name = arg[0].token.text  # type: ignore[union-attr]
		if name in names:
			return name, tuple(arg[2:])
	return None


def _arg_span(arg: Sequence[TokenTree], fallback: Optional[Span]) -> Optional[Span]:
	return arg[0].span if arg else fallback


class MacroExpander:
	def __init__(
		self,
		table: MacroTable,
		parse_eager: Optional[EagerParser] = None,
		*,
		recursion_limit: int = DEFAULT_RECURSION_LIMIT,
	) -> None:
		self.logger = logging.getLogger(__name__)
		self.table = table
		self.parse_eager = parse_eager
		self.recursion_limit = recursion_limit
		self._nesting = 0

	def expand(self, trees: Sequence[TokenTree], depth: int = 0) -> list[TokenTree]:
		"""
		Expand every `.define` invocation in `trees` to a fixed point.

		Descends into `( )` and `[ ]` groups. Brace blocks hold statements
		and are expanded line by line when the parser reaches them.
		"""
		out: list[TokenTree] = []
		pending: list[Tuple[TokenTree, int]] = [(tree, depth) for tree in reversed(trees)]
		while pending:
			tree, level = pending.pop()
			if isinstance(tree, TokenGroup):
				if tree.delim == "{":
					out.append(tree)
				else:
					out.append(self._expand_group(tree, level))
				continue
			macro = self.table.lookup(tree.token.text, MacroKind.DEFINE) if is_ident(tree) else None
			if macro is None:
				out.append(tree)
				continue
			if macro.function_like:
				call = pending[-1][0] if pending else None
				if not isinstance(call, TokenGroup) or call.delim != "(":
					out.append(tree)
					continue
				pending.pop()
				args, commas = split_args(call.children)
			else:
				args, commas = [], []
			result = self._expand_define(macro, args, commas, tree.span, level)
			for item in reversed(result):
				pending.append((item, level + 1))
		return out

	def expand_call(
		self,
		name: str,
		arg_trees: Sequence[TokenTree] = (),
		span: Optional[Span] = None,
		depth: int = 0,
	) -> list[TokenTree]:
		"""Expand one named `.define` with the given argument trees, fully."""
		macro = self.table.require(name, MacroKind.DEFINE, span)
		args, commas = split_args(arg_trees)
		if not macro.function_like and args:
			raise ArityError(f"{macro.describe()} takes no arguments", span=span)
		result = self._expand_define(macro, args, commas, span, depth)
		return self.expand(result, depth + 1)

	def _expand_group(self, group: TokenGroup, depth: int) -> TokenGroup:
		self._nesting += 1
		try:
			if self._nesting > MAX_GROUP_NESTING:
				raise MacroError(
					f"expansion nests delimiters more than {MAX_GROUP_NESTING} deep",
					code="E-MACRO-NESTING",
					span=group.span,
				)
			return TokenGroup(group.open, tuple(self.expand(group.children, depth)), group.close)
		finally:
			self._nesting -= 1

	def instantiate(
		self,
		macro: MacroDef,
		arg_trees: Sequence[TokenTree],
		span: Optional[Span] = None,
		depth: int = 0,
	) -> list[Line]:
		"""Bind a statement macro's arguments and return its substituted body lines."""
		self._check_depth(macro, span, depth)
		args, commas = split_args(arg_trees)
		bindings = self.bind(macro, args, commas, span, depth)
		self.logger.debug("instantiate %s at depth %d", macro.describe(), depth)
		lines = [tuple(substitute(line, bindings)) for line in macro.body]
		return [line for line in lines if line]

	def bind(
		self,
		macro: MacroDef,
		args: Sequence[Sequence[TokenTree]],
		commas: Sequence[TokenLeaf] = (),
		span: Optional[Span] = None,
		depth: int = 0,
	) -> Bindings:
		names = macro.param_names
		fixed = [param for param in macro.params if not param.variadic]
		variadic = macro.params[-1] if macro.params and macro.params[-1].variadic else None

		positional: list[Sequence[TokenTree]] = []
		named: list[Tuple[str, Tuple[TokenTree, ...], Optional[Span]]] = []
		for arg in args:
			pair = _named_arg(arg, names)
			if pair is None:
				if named:
					raise ArityError(
						f"positional argument follows named argument in call to '{macro.name}'",
						span=_arg_span(arg, span),
					)
				positional.append(arg)
			else:
				named.append((pair[0], pair[1], _arg_span(arg, span)))

		bound: Bindings = {}
		for param, arg in zip(fixed, positional):
			bound[param.name] = tuple(arg)
		extra = len(positional) - len(fixed)
		if extra > 0:
			if variadic is None:
				raise ArityError(
					f"'{macro.name}' takes {len(fixed)} argument(s) but {len(positional)} were given",
					span=_arg_span(positional[len(fixed)], span),
				)
			first = len(fixed)
			bound[variadic.name] = tuple(join_args(positional[first:], commas[first : len(positional) - 1]))

		for name, value, where in named:
			if name in bound:
				raise ArityError(f"argument '{name}' of '{macro.name}' given more than once", span=where)
			bound[name] = value

		for param in macro.params:
			if param.name in bound:
				continue
			if param.variadic:
				bound[param.name] = ()
			elif param.default is not None:
				bound[param.name] = param.default
			else:
				raise ArityError(f"'{macro.name}' is missing required argument '{param.name}'", span=span)

		for param in macro.params:
			if param.eager:
				bound[param.name] = (self._evaluate(bound[param.name], span, depth),)
		return bound

	def _expand_define(
		self,
		macro: MacroDef,
		args: Sequence[Sequence[TokenTree]],
		commas: Sequence[TokenLeaf],
		span: Optional[Span],
		depth: int,
	) -> list[TokenTree]:
		self._check_depth(macro, span, depth)
		bindings = self.bind(macro, args, commas, span, depth)
		self.logger.debug("expand %s at depth %d", macro.describe(), depth)
		body = macro.body[0] if macro.body else ()
		return substitute(body, bindings)

	def _evaluate(self, trees: Sequence[TokenTree], span: Optional[Span], depth: int) -> TokenLeaf:
		if self.parse_eager is None:
			raise MacroError("eager macro parameters need an expression parser", span=span)
		expr = self.parse_eager(trees, depth + 1)
		where = trees[0].span if trees else (span or Span())
		return TokenLeaf(Token(TokenKind.EMBED, render(trees), expr, where))

	def _check_depth(self, macro: MacroDef, span: Optional[Span], depth: int) -> None:
		if depth >= self.recursion_limit:
			raise RecursionLimitError(
				f"expansion of {macro.describe()} exceeds the recursion limit ({self.recursion_limit})",
				span=span,
			)


__all__ = [
	"MacroKind",
	"MacroParam",
	"MacroDef",
	"MacroTable",
	"MacroExpander",
	"EagerParser",
	"Bindings",
	"validate_params",
	"substitute",
]
