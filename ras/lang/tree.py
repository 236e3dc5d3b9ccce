# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Token trees.

A token tree is a token stream with its `( )`, `[ ]` and `{ }` delimiters
matched up into nested groups. Trees are immutable; macro substitution
builds new trees and may share subtrees, which cannot form cycles.

LineReader groups a token stream into statement lines. A line is the tuple
of top-level trees between two end-of-statement markers. End-of-statement
markers inside `{ }` are kept as leaves (brace blocks hold statements);
inside `( )` or `[ ]` they are an error. Delimiters may nest at most
MAX_GROUP_NESTING deep.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Sequence, Union

from ras.core.errors import AsmError, ParseError
from ras.core.span import Span

from .tokens import Token, TokenKind


@dataclass(frozen=True)
class TokenLeaf:
	token: Token

	@property
	def span(self) -> Span:
		return self.token.span


@dataclass(frozen=True)
class TokenGroup:
	open: Token
	children: tuple["TokenTree", ...]
	close: Token

	@property
	def delim(self) -> str:
		return self.open.text

	@property
	def span(self) -> Span:
		return self.open.span


TokenTree = Union[TokenLeaf, TokenGroup]
Line = tuple[TokenTree, ...]

CLOSERS = {"(": ")", "[": "]", "{": "}"}

# deepest delimiter nesting a line may have
MAX_GROUP_NESTING = 100


def leaf_token(tree: Optional[TokenTree]) -> Optional[Token]:
	return tree.token if isinstance(tree, TokenLeaf) else None


def is_ident(tree: Optional[TokenTree], name: Optional[str] = None) -> bool:
	tok = leaf_token(tree)
	return tok is not None and tok.kind is TokenKind.IDENT and (name is None or tok.text == name)


def is_op(tree: Optional[TokenTree], *texts: str) -> bool:
	tok = leaf_token(tree)
	return tok is not None and tok.is_op(*texts)


def is_punct(tree: Optional[TokenTree], *texts: str) -> bool:
	tok = leaf_token(tree)
	return tok is not None and tok.is_punct(*texts)


def is_eos(tree: Optional[TokenTree]) -> bool:
	tok = leaf_token(tree)
	return tok is not None and tok.kind is TokenKind.EOS


def describe(tree: Optional[TokenTree]) -> str:
	if tree is None:
		return "end of statement"
	if isinstance(tree, TokenGroup):
		return repr(tree.delim)
	return tree.token.describe()


def split_args(trees: Sequence[TokenTree]) -> tuple[list[list[TokenTree]], list[TokenLeaf]]:
	"""
	Split at top-level commas.

	Returns the argument chunks and the comma leaves between them
	(`len(commas) == len(args) - 1`). No trees means no arguments.
	"""
	if not trees:
		return [], []
	args: list[list[TokenTree]] = [[]]
	commas: list[TokenLeaf] = []
	for tree in trees:
		if isinstance(tree, TokenLeaf) and tree.token.is_punct(","):
			commas.append(tree)
			args.append([])
		else:
			args[-1].append(tree)
	return args, commas


def join_args(args: Sequence[Sequence[TokenTree]], commas: Sequence[TokenLeaf]) -> list[TokenTree]:
	"""Inverse of split_args for a run of arguments and their separators."""
	out: list[TokenTree] = []
	for i, arg in enumerate(args):
		if i:
			out.append(commas[i - 1])
		out.extend(arg)
	return out


def split_lines(trees: Sequence[TokenTree]) -> list[Line]:
	"""Split brace-block contents into statement lines, dropping empty ones."""
	lines: list[Line] = []
	current: list[TokenTree] = []
	for tree in trees:
		if is_eos(tree):
			if current:
				lines.append(tuple(current))
			current = []
		else:
			current.append(tree)
	if current:
		lines.append(tuple(current))
	return lines


def iter_tokens(trees: Iterable[TokenTree]) -> Iterator[Token]:
	for tree in trees:
		if isinstance(tree, TokenGroup):
			yield tree.open
			yield from iter_tokens(tree.children)
			yield tree.close
		else:
			yield tree.token


def render(trees: Iterable[TokenTree]) -> str:
	"""Debug text for a tree sequence (not guaranteed to re-lex identically)."""
	parts: list[str] = []
	for tok in iter_tokens(trees):
		parts.append(";" if tok.kind is TokenKind.EOS else tok.text)
	return " ".join(parts)


class LineReader:
	"""
	Lazily groups a token stream into statement lines of token trees.

	Without `report`, the first lexical or delimiter error propagates. With
	it, each error is reported, the rest of the statement is skipped and
	reading resumes at the next statement boundary. A statement that opened
	a `{` before failing runs until that brace is closed.
	"""

	def __init__(self, tokens: Iterable[Token], report: Optional[Callable[[AsmError], None]] = None) -> None:
		self.logger = logging.getLogger(__name__)
		self._tokens = iter(tokens)
		self._report = report
		self._at_boundary = False
		# openers of the line being read, innermost last
		self._stack: list[tuple[Token, list[TokenTree]]] = []

	def __iter__(self) -> Iterator[Line]:
		while True:
			try:
				line = self._read_line()
			except AsmError as err:
				if self._report is None:
					raise
				self._report(err)
				if not self._at_boundary:
					self._skip_statement(self._report)
				continue
			if line is None:
				return
			if line:
				yield line

	def _next(self) -> Optional[Token]:
		try:
			return next(self._tokens)
		except StopIteration:
			return None

	def _skip_statement(self, report: Callable[[AsmError], None]) -> None:
		opened = [opener.text for opener, _ in self._stack]
		while True:
			try:
				tok = self._next()
			except AsmError as err:
				# A second bad token inside a statement that is already dropped.
				report(err)
				continue
			if tok is None:
				self.logger.debug("resynchronized at end of input")
				return
			if tok.kind is TokenKind.EOS:
				_drop_line_groups(opened)
				if not opened:
					self.logger.debug("resynchronized at %s", tok.span)
					return
			elif tok.is_punct("(", "[", "{"):
				opened.append(tok.text)
			elif tok.is_punct(")", "]", "}"):
				while opened and CLOSERS[opened.pop()] != tok.text:
					pass

	def _read_line(self) -> Optional[Line]:
		self._at_boundary = False
		self._stack = stack = []
		items: list[TokenTree] = []
		seen_any = False
		while True:
			tok = self._next()
			if tok is None:
				self._at_boundary = True
				if stack:
					opener = stack[-1][0]
					raise ParseError(
						f"unclosed '{opener.text}' at end of input",
						code="E-PARSE-UNMATCHED",
						span=opener.span,
						expected=repr(CLOSERS[opener.text]),
					)
				return tuple(items) if seen_any else None
			seen_any = True
			if tok.kind is TokenKind.EOS:
				if not stack:
					self._at_boundary = True
					return tuple(items)
				opener = stack[-1][0]
				if opener.text == "{":
					items.append(TokenLeaf(tok))
					continue
				while stack and stack[-1][0].text != "{":
					stack.pop()
				# inside an enclosing brace the statement is not over yet
				self._at_boundary = not stack
				raise ParseError(
					f"unclosed '{opener.text}' before end of statement",
					code="E-PARSE-UNMATCHED",
					span=opener.span,
					found=tok.describe(),
					expected=repr(CLOSERS[opener.text]),
				)
			if tok.is_punct("(", "[", "{"):
				stack.append((tok, items))
				items = []
				if len(stack) > MAX_GROUP_NESTING:
					raise ParseError(
						f"delimiters nested more than {MAX_GROUP_NESTING} deep",
						code="E-PARSE-NESTING",
						span=tok.span,
						found=tok.describe(),
					)
				continue
			if tok.is_punct(")", "]", "}"):
				if not stack:
					raise ParseError(f"unmatched '{tok.text}'", code="E-PARSE-UNMATCHED", span=tok.span, found=tok.describe())
				opener, outer = stack[-1]
				expected = CLOSERS[opener.text]
				if tok.text != expected:
					raise ParseError(
						f"mismatched '{tok.text}'; expected '{expected}'",
						code="E-PARSE-MISMATCHED",
						span=tok.span,
						found=tok.describe(),
						expected=repr(expected),
						notes=[f"'{opener.text}' opened at {opener.span}"],
					)
				stack.pop()
				outer.append(TokenGroup(opener, tuple(items), tok))
				items = outer
				continue
			items.append(TokenLeaf(tok))


def _drop_line_groups(opened: list[str]) -> None:
	"""`( )` and `[ ]` never span a statement boundary; only braces stay open."""
	while opened and opened[-1] != "{":
		opened.pop()


__all__ = [
	"TokenLeaf",
	"TokenGroup",
	"TokenTree",
	"Line",
	"CLOSERS",
	"MAX_GROUP_NESTING",
	"LineReader",
	"leaf_token",
	"is_ident",
	"is_op",
	"is_punct",
	"is_eos",
	"describe",
	"split_args",
	"join_args",
	"split_lines",
	"iter_tokens",
	"render",
]
