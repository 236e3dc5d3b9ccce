# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Statement and expression parser.

The parser reads statement lines (token trees, see tree.py) one at a time.
Each line may start with labels (`name:`, `name::`, `name:?`) and then holds
one of:

  - `.define name[(params)] = tokens`: registered immediately.
  - `.macro name [params]` ... `.end`: body lines captured unexpanded.
  - `.block [name]` ... `.end [name]`: a nested scope.
  - a statement-macro invocation: `name args`.
  - a generic directive `name arg, arg, ...`, after `.define` expansion.

Expressions are parsed by precedence climbing over the operator table in
ops.py. The signedness context is threaded explicitly through every
expression call; `.signed` / `.unsigned` replace the parser's current one.

Errors are AsmError exceptions. In recover mode each failing statement is
reported and dropped, and parsing resumes at the next statement boundary;
otherwise the first error propagates to the caller.
"""

from __future__ import annotations

import copy
import logging
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from ras.core.diagnostics import Diagnostic
from ras.core.errors import (
	AsmError,
	ParseError,
	RecursionLimitError,
	ScopeMismatchError,
	UnclosedScopeError,
	UnmatchedEndError,
)
from ras.core.span import Span

from .ast import (
	Arg,
	Array,
	Atom,
	Block,
	BlockExpr,
	BlockStmt,
	Define,
	Directive,
	DupArg,
	Expr,
	ExprArg,
	Group,
	InfixOp,
	Label,
	MacroDefinition,
	Module,
	Placeholder,
	PostfixOp,
	PrefixOp,
	Stmt,
)
from .config import FrontEndConfig
from .lexer import Lexer
from .macros import MacroDef, MacroExpander, MacroKind, MacroParam, MacroTable
from .ops import MIN_POWER, infix_op, postfix_op, prefix_op
from .scope import LABEL_MARKERS, LabelKind, Scope, ScopeKind, ScopeManager
from .signedness import DIRECTIVES as SIGNEDNESS_DIRECTIVES
from .signedness import SignednessContext, apply_directive, resolve
from .tokens import LITERAL_KINDS, Token, TokenKind
from .tree import (
	Line,
	LineReader,
	TokenGroup,
	TokenTree,
	describe,
	is_ident,
	is_op,
	is_punct,
	leaf_token,
	split_args,
	split_lines,
)

# Expression nesting (parentheses, prefix chains, right-nested operators)
# beyond this is reported instead of exhausting the interpreter stack.
MAX_EXPR_NESTING = 100

_NO_ARG_DIRECTIVES = frozenset({".nop"}) | frozenset(SIGNEDNESS_DIRECTIVES)


class TreeCursor:
	"""Read position over a sequence of token trees."""

	def __init__(self, trees: Sequence[TokenTree], *, end_span: Optional[Span] = None, end_desc: str = "end of statement") -> None:
		self.trees = trees
		self.pos = 0
		self.end_span = end_span
		self.end_desc = end_desc

	@property
	def at_end(self) -> bool:
		return self.pos >= len(self.trees)

	def peek(self, offset: int = 0) -> Optional[TokenTree]:
		index = self.pos + offset
		return self.trees[index] if index < len(self.trees) else None

	def advance(self) -> Optional[TokenTree]:
		tree = self.peek()
		if tree is not None:
			self.pos += 1
		return tree

	def rest(self) -> List[TokenTree]:
		out = list(self.trees[self.pos :])
		self.pos = len(self.trees)
		return out

	def where(self) -> Span:
		tree = self.peek()
		if tree is not None:
			return tree.span
		return self.end_span if self.end_span is not None else Span()


def _head_name(line: Sequence[TokenTree]) -> Optional[str]:
	tok = leaf_token(line[0]) if line else None
	return tok.text if tok is not None and tok.kind is TokenKind.IDENT else None


def _is_label_marker(tree: Optional[TokenTree]) -> bool:
	tok = leaf_token(tree)
	return tok is not None and tok.kind in (TokenKind.OPERATOR, TokenKind.PUNCT) and tok.text in LABEL_MARKERS


def _strip_labels(line: Sequence[TokenTree]) -> Sequence[TokenTree]:
	i = 0
	while i + 1 < len(line) and is_ident(line[i]) and _is_label_marker(line[i + 1]):
		i += 2
	return line[i:]


class Parser:
	"""
	Parser for one compilation unit.

	Owns the unit's macro table, scope stack and signedness context, so
	independent units never share state.
	"""

	def __init__(
		self,
		config: Optional[FrontEndConfig] = None,
		*,
		file: Optional[str] = None,
		macros: Optional[MacroTable] = None,
	) -> None:
		self.config = config or FrontEndConfig()
		self.file = file
		self.logger = logging.getLogger(__name__)
		self.macros = macros if macros is not None else MacroTable()
		self.scopes = ScopeManager()
		self.signedness = SignednessContext(self.config.default_signedness)
		self.expander = MacroExpander(self.macros, self._parse_eager, recursion_limit=self.config.recursion_limit)
		self.diagnostics: List[Diagnostic] = []
		self._nesting = 0

	# -- entry points ---------------------------------------------------------

	def parse_module(self, source: str) -> Module:
		report = self._report if self.config.recover else None
		lines = iter(LineReader(Lexer(source, file=self.file), report=report))
		statements = self._parse_lines(lines, depth=0)
		return Module(statements, file=self.file)

	def parse_expression(self, source: str) -> Expr:
		"""Parse one macro-expanded expression (no statements) under the current context."""
		lines = list(LineReader(Lexer(source, file=self.file)))
		if len(lines) != 1:
			raise ParseError("expected a single expression", code="E-PARSE-EXPECTED", span=Span(file=self.file))
		return self._parse_eager(lines[0], 0)

	# -- error handling -------------------------------------------------------

	def _report(self, err: AsmError) -> None:
		self.logger.debug("recovered from %s at %s", err.code, err.span)
		self.diagnostics.append(err.to_diagnostic())

	def _recover(self, err: AsmError) -> None:
		if not self.config.recover:
			raise err
		self._report(err)

	# -- statements -----------------------------------------------------------

	def _parse_lines(self, lines: Iterator[Line], depth: int, block: Optional[Scope] = None) -> List[Stmt]:
		"""
		Parse statements until `lines` runs out.

		With `block`, a `.end` line closes that scope and ends the run; end of
		input before it is an unclosed-scope error.
		"""
		statements: List[Stmt] = []
		for line in lines:
			try:
				labels, rest = self._parse_labels(line)
				statements.extend(labels)
				if _head_name(rest) == ".end":
					self._close_block(rest, block)
					return statements
				statements.extend(self._parse_statement(rest, lines, depth))
			except AsmError as err:
				self._recover(err)
		if block is not None:
			self.scopes.close(block)
			self._recover(
				UnclosedScopeError(
					f"missing '.end' for {block.describe()}",
					span=block.span,
					expected="'.end'",
				)
			)
		return statements

	def _parse_labels(self, line: Sequence[TokenTree]) -> Tuple[List[Stmt], Sequence[TokenTree]]:
		labels: List[Stmt] = []
		i = 0
		while i + 1 < len(line) and is_ident(line[i]) and _is_label_marker(line[i + 1]):
			tok = line[i].token  # type: ignore[union-attr]
			marker = line[i + 1].token.text  # type: ignore[union-attr]
			info = self.scopes.declare_label(tok.text, LabelKind.from_marker(marker), tok.span)
			labels.append(Label(tok.span, tok.text, info.kind, info.scope_id))
			i += 2
		return labels, line[i:]

	def _parse_statement(
		self,
		rest: Sequence[TokenTree],
		lines: Iterator[Line],
		depth: int,
		*,
		expanded: bool = False,
	) -> List[Stmt]:
		if not rest:
			return []
		name = _head_name(rest)
		if name == ".end":
			raise UnmatchedEndError("'.end' without an open .block", span=rest[0].span)
		if name == ".define":
			return [self._parse_define(rest)]
		if name == ".macro":
			return [self._parse_macro(rest, lines)]
		if name == ".block":
			return [self._parse_block(rest, lines, depth)]
		if name is not None:
			macro = self.macros.lookup(name, MacroKind.MACRO)
			if macro is not None:
				return [self._invoke_macro(macro, rest, depth)]
		if not expanded:
			out = tuple(self.expander.expand(rest, depth))
			if out != tuple(rest):
				labels, tail = self._parse_labels(out)
				return labels + self._parse_statement(tail, lines, depth, expanded=True)
		return [self._parse_directive(rest, depth)]

	def _parse_directive(self, line: Sequence[TokenTree], depth: int) -> Directive:
		head = leaf_token(line[0])
		if head is None or head.kind is not TokenKind.IDENT:
			raise ParseError(
				f"expected a label or directive, found {describe(line[0])}",
				code="E-PARSE-UNEXPECTED",
				span=line[0].span,
				found=describe(line[0]),
				expected="label or directive",
			)
		arg_trees = line[1:]
		if head.text in _NO_ARG_DIRECTIVES:
			if arg_trees:
				raise ParseError(
					f"'{head.text}' takes no arguments",
					code="E-PARSE-TRAILING",
					span=arg_trees[0].span,
					found=describe(arg_trees[0]),
					expected="end of statement",
				)
			if head.text in SIGNEDNESS_DIRECTIVES:
				self.signedness = apply_directive(head.text, self.signedness)
				self.logger.debug("default signedness is now %s", self.signedness.default.value)
			return Directive(head.span, head.text, [])

		args: List[Arg] = []
		chunks, commas = split_args(arg_trees)
		for index, chunk in enumerate(chunks):
			if not chunk:
				where = commas[index - 1].span if index else commas[0].span
				raise ParseError(
					f"missing argument to '{head.text}'",
					code="E-PARSE-EXPECTED",
					span=where,
					expected="argument",
				)
			args.append(self._parse_arg(chunk, depth))
		return Directive(head.span, head.text, args)

	def _parse_arg(self, chunk: Sequence[TokenTree], depth: int) -> Arg:
		cur = TreeCursor(chunk, end_desc="',' or end of statement")
		value: Union[Expr, Placeholder]
		first = cur.peek()
		if first is not None and is_punct(first, "?"):
			cur.advance()
			value = Placeholder(first.span)
		else:
			value = self._parse_expr(cur, MIN_POWER, self.signedness, depth)
		dollar = cur.peek()
		if dollar is not None and is_punct(dollar, "$"):
			cur.advance()
			cur.end_span = dollar.span
			count = self._parse_expr(cur, MIN_POWER, self.signedness, depth)
			self._expect_end(cur)
			return DupArg(dollar.span, value, count)
		self._expect_end(cur)
		if isinstance(value, Placeholder):
			return value
		return ExprArg(value.span, value)

	def _close_block(self, rest: Sequence[TokenTree], block: Optional[Scope]) -> None:
		head = rest[0]
		name = self._optional_name(rest, ".end")
		if block is None:
			if self.scopes.current.kind is ScopeKind.BRACE:
				raise UnmatchedEndError("'.end' cannot close a '{' block", span=head.span)
			raise UnmatchedEndError("'.end' without an open .block", span=head.span)
		try:
			self.scopes.pop(name, head.span)
		except ScopeMismatchError as err:
			# The block still ends here; report the name and carry on.
			self.scopes.close(block)
			self._recover(err)

	def _optional_name(self, rest: Sequence[TokenTree], what: str) -> Optional[str]:
		if len(rest) == 1:
			return None
		if len(rest) == 2 and is_ident(rest[1]):
			return rest[1].token.text  # type: ignore[union-attr]
		bad = rest[1] if not is_ident(rest[1]) else rest[2]
		raise ParseError(
			f"unexpected {describe(bad)} after '{what}'",
			code="E-PARSE-TRAILING",
			span=bad.span,
			found=describe(bad),
			expected="name or end of statement",
		)

	def _parse_block(self, rest: Sequence[TokenTree], lines: Iterator[Line], depth: int) -> BlockStmt:
		head = rest[0]
		name = self._optional_name(rest, ".block")
		saved = self.scopes.depth
		scope = self.scopes.push(name, ScopeKind.BLOCK, head.span)
		try:
			statements = self._parse_lines(lines, depth, block=scope)
		finally:
			self.scopes.unwind(saved)
		return BlockStmt(head.span, ScopeKind.BLOCK, name, Block(statements, scope.id))

	# -- macros ---------------------------------------------------------------

	def _expect_ident(self, cur: TreeCursor, what: str) -> Token:
		tree = cur.advance()
		if not is_ident(tree):
			raise ParseError(
				f"expected {what}, found {describe(tree)}",
				code="E-PARSE-EXPECTED",
				span=tree.span if tree is not None else cur.where(),
				found=describe(tree),
				expected=what,
			)
		return tree.token  # type: ignore[union-attr]

	def _parse_params(self, trees: Sequence[TokenTree], span: Span) -> Tuple[MacroParam, ...]:
		chunks, commas = split_args(trees)
		params: List[MacroParam] = []
		for index, chunk in enumerate(chunks):
			if not chunk:
				raise ParseError(
					"expected a macro parameter",
					code="E-PARSE-EXPECTED",
					span=commas[index - 1].span if index else commas[0].span,
					expected="parameter name",
				)
			eager = variadic = False
			i = 0
			while i < len(chunk) and is_op(chunk[i], "!", "*"):
				flag = chunk[i].token  # type: ignore[union-attr]
				if (flag.text == "!" and eager) or (flag.text == "*" and variadic):
					raise ParseError(f"repeated '{flag.text}' on macro parameter", code="E-PARSE-PARAM", span=flag.span)
				eager = eager or flag.text == "!"
				variadic = variadic or flag.text == "*"
				i += 1
			name_tree = chunk[i] if i < len(chunk) else None
			if not is_ident(name_tree):
				raise ParseError(
					f"expected a parameter name, found {describe(name_tree)}",
					code="E-PARSE-PARAM",
					span=name_tree.span if name_tree is not None else chunk[0].span,
					found=describe(name_tree),
					expected="parameter name",
				)
			name_tok = name_tree.token  # type: ignore[union-attr]
			default = None
			if i + 1 < len(chunk):
				if not is_op(chunk[i + 1], "="):
					raise ParseError(
						f"unexpected {describe(chunk[i + 1])} after parameter '{name_tok.text}'",
						code="E-PARSE-PARAM",
						span=chunk[i + 1].span,
						found=describe(chunk[i + 1]),
						expected="',' or '='",
					)
				default = tuple(chunk[i + 2 :])
			params.append(MacroParam(name_tok.text, eager, variadic, default, name_tok.span))
		return tuple(params)

	def _parse_define(self, rest: Sequence[TokenTree]) -> Define:
		head = rest[0]
		cur = TreeCursor(rest[1:], end_span=head.span)
		name_tok = self._expect_ident(cur, "macro name")
		params: Tuple[MacroParam, ...] = ()
		function_like = False
		group = cur.peek()
		if isinstance(group, TokenGroup) and group.delim == "(":
			cur.advance()
			params = self._parse_params(group.children, group.span)
			function_like = True
		eq = cur.advance()
		if not is_op(eq, "="):
			raise ParseError(
				f"expected '=' in definition of '{name_tok.text}', found {describe(eq)}",
				code="E-PARSE-EXPECTED",
				span=eq.span if eq is not None else name_tok.span,
				found=describe(eq),
				expected="'='",
			)
		macro = MacroDef(
			name=name_tok.text,
			kind=MacroKind.DEFINE,
			params=params,
			body=(tuple(cur.rest()),),
			function_like=function_like,
			span=name_tok.span,
		)
		self.macros.define(macro)
		self.logger.debug("defined %s with %d parameter(s)", macro.describe(), len(params))
		return Define(head.span, macro)

	def _parse_macro(self, rest: Sequence[TokenTree], lines: Iterator[Line]) -> MacroDefinition:
		head = rest[0]
		cur = TreeCursor(rest[1:], end_span=head.span)
		name_tok = self._expect_ident(cur, "macro name")
		param_trees = cur.rest()
		body = self._capture_body(name_tok, head.span, lines)
		macro = MacroDef(
			name=name_tok.text,
			kind=MacroKind.MACRO,
			params=self._parse_params(param_trees, name_tok.span),
			body=body,
			span=name_tok.span,
		)
		self.macros.define(macro)
		self.logger.debug("defined %s with %d line(s)", macro.describe(), len(body))
		return MacroDefinition(head.span, macro)

	def _capture_body(self, name_tok: Token, span: Span, lines: Iterator[Line]) -> Tuple[Line, ...]:
		"""
		Collect raw lines up to the `.end` matching this `.macro`.

		Blocks and macros opened inside the body are only counted here; their
		scopes are created when an invocation parses the body.
		"""
		saved = self.scopes.depth
		scope = self.scopes.push(name_tok.text, ScopeKind.MACRO, span)
		nested: List[Tuple[str, Optional[str], Span]] = []
		body: List[Line] = []
		try:
			for line in lines:
				stmt = _strip_labels(line)
				head = _head_name(stmt)
				if head in (".block", ".macro"):
					inner = leaf_token(stmt[1]) if len(stmt) > 1 and is_ident(stmt[1]) else None
					nested.append((head, inner.text if inner is not None else None, stmt[0].span))
				elif head == ".end":
					end_tok = leaf_token(stmt[1]) if len(stmt) > 1 and is_ident(stmt[1]) else None
					closing = not nested
					what, opened, opened_at = nested.pop() if nested else (".macro", name_tok.text, span)
					if end_tok is not None and end_tok.text != opened:
						self._recover(
							ScopeMismatchError(
								f"'.end {end_tok.text}' does not match {what} '{opened}'"
								if opened
								else f"'.end {end_tok.text}' does not match {what}",
								span=stmt[0].span,
								found=repr(end_tok.text),
								expected=repr(opened) if opened else "'.end' without a name",
								notes=[f"scope opened at {opened_at}"],
							)
						)
					if closing:
						self.scopes.close(scope)
						return tuple(body)
				body.append(tuple(line))
			raise UnclosedScopeError(
				f"missing '.end' for .macro '{name_tok.text}'",
				span=span,
				expected="'.end'",
			)
		finally:
			self.scopes.unwind(saved)

	def _invoke_macro(self, macro: MacroDef, rest: Sequence[TokenTree], depth: int) -> BlockStmt:
		head = rest[0]
		lines = self.expander.instantiate(macro, rest[1:], head.span, depth)
		saved = self.scopes.depth
		scope = self.scopes.push(macro.name, ScopeKind.MACRO, head.span)
		try:
			statements = self._parse_lines(iter(lines), depth + 1)
		finally:
			self.scopes.unwind(saved)
		return BlockStmt(head.span, ScopeKind.MACRO, macro.name, Block(statements, scope.id))

	def _parse_eager(self, trees: Sequence[TokenTree], depth: int) -> Expr:
		expanded = self.expander.expand(trees, depth)
		end_span = trees[-1].span if trees else None
		cur = TreeCursor(expanded, end_span=end_span, end_desc="end of argument")
		expr = self._parse_expr(cur, MIN_POWER, self.signedness, depth)
		self._expect_end(cur)
		return expr

	# -- expressions ----------------------------------------------------------

	def _expect_end(self, cur: TreeCursor) -> None:
		tree = cur.peek()
		if tree is not None:
			raise ParseError(
				f"unexpected {describe(tree)}; expected {cur.end_desc}",
				code="E-PARSE-TRAILING",
				span=tree.span,
				found=describe(tree),
				expected=cur.end_desc,
			)

	def _parse_expr(self, cur: TreeCursor, min_power: int, ctx: SignednessContext, depth: int) -> Expr:
		"""
		Precedence climbing: read a prefix form, then fold in postfix and infix
		operators whose binding power is at least `min_power`.
		"""
		self._nesting += 1
		try:
			if self._nesting > MAX_EXPR_NESTING:
				raise ParseError(
					"expression is nested too deeply",
					code="E-PARSE-NESTING",
					span=cur.where(),
				)
			lhs = self._parse_prefix(cur, ctx, depth)
			while True:
				tok = leaf_token(cur.peek())
				if tok is None or tok.kind is not TokenKind.OPERATOR:
					break
				post = postfix_op(tok.text)
				if post is not None and post.power >= min_power:
					cur.advance()
					resolved, _ = resolve(post, ctx)
					lhs = PostfixOp(tok.span, post, lhs, resolved.signedness)
					continue
				op = infix_op(tok.text)
				if op is None or op.power < min_power:
					break
				cur.advance()
				resolved, rhs_ctx = resolve(op, ctx)
				rhs = self._parse_expr(cur, op.next_power, rhs_ctx, depth)
				lhs = InfixOp(tok.span, op, lhs, rhs, resolved.signedness)
			return lhs
		finally:
			self._nesting -= 1

	def _parse_prefix(self, cur: TreeCursor, ctx: SignednessContext, depth: int) -> Expr:
		tree = cur.advance()
		if tree is None:
			raise ParseError(
				f"expected an expression, found {cur.end_desc}",
				code="E-PARSE-EXPECTED",
				span=cur.where(),
				found=cur.end_desc,
				expected="expression",
			)
		if isinstance(tree, TokenGroup):
			if tree.delim == "(":
				return Group(tree.span, self._parse_group_body(tree, ctx, depth))
			if tree.delim == "[":
				body = self._parse_group_body(tree, ctx, depth)
				nonempty = is_op(cur.peek(), "!")
				if nonempty:
					cur.advance()
				return Array(tree.span, body, nonempty)
			return BlockExpr(tree.span, self._parse_brace(tree, depth))
		tok = tree.token
		if tok.kind is TokenKind.EMBED:
			# each use of an eager argument gets its own tree
			return copy.deepcopy(tok.value)
		if tok.kind is TokenKind.IDENT or tok.kind in LITERAL_KINDS:
			return Atom(tok.span, tok)
		if tok.kind is TokenKind.OPERATOR:
			op = prefix_op(tok.text)
			if op is not None:
				resolved, inner_ctx = resolve(op, ctx)
				operand = self._parse_expr(cur, op.next_power, inner_ctx, depth)
				return PrefixOp(tok.span, op, operand, resolved.signedness)
		raise ParseError(
			f"expected an expression, found {tok.describe()}",
			code="E-PARSE-UNEXPECTED",
			span=tok.span,
			found=tok.describe(),
			expected="expression",
		)

	def _parse_group_body(self, group: TokenGroup, ctx: SignednessContext, depth: int) -> Expr:
		cur = TreeCursor(group.children, end_span=group.close.span, end_desc=repr(group.close.text))
		expr = self._parse_expr(cur, MIN_POWER, ctx, depth)
		self._expect_end(cur)
		return expr

	def _parse_brace(self, group: TokenGroup, depth: int) -> Block:
		if depth >= self.config.recursion_limit:
			raise RecursionLimitError(
				f"block nesting exceeds the recursion limit ({self.config.recursion_limit})",
				span=group.span,
			)
		saved = self.scopes.depth
		scope = self.scopes.push(None, ScopeKind.BRACE, group.span)
		try:
			statements = self._parse_lines(iter(split_lines(group.children)), depth + 1)
		finally:
			self.scopes.unwind(saved)
		return Block(statements, scope.id)


__all__ = ["Parser", "TreeCursor", "MAX_EXPR_NESTING"]
