# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Scope / label manager.

Scopes form a LIFO stack rooted at the top-level scope. Every scope ever
opened stays in `ScopeManager.scopes`, which together with the labels
recorded on each scope is the label/scope table handed downstream. Label
visibility and override rules belong to semantic analysis; this module only
records each label's kind against its enclosing scope.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ras.core.errors import ScopeMismatchError, UnmatchedEndError
from ras.core.span import Span


class ScopeKind(Enum):
	TOP_LEVEL = "top-level"
	BLOCK = "block"  # .block ... .end
	BRACE = "brace"  # { ... }
	MACRO = "macro"  # .macro body (definition or invocation)


class LabelKind(Enum):
	PRIVATE = ":"
	PUBLIC = "::"
	WEAK = ":?"

	@classmethod
	def from_marker(cls, marker: str) -> "LabelKind":
		return cls(marker)


LABEL_MARKERS = frozenset(kind.value for kind in LabelKind)


@dataclass(frozen=True)
class LabelInfo:
	name: str
	kind: LabelKind
	scope_id: int
	span: Span = Span()

	@property
	def local(self) -> bool:
		"""Dot-prefixed labels (`.loop:`) are local to the enclosing symbol."""
		return self.name.startswith(".")


@dataclass
class Scope:
	id: int
	kind: ScopeKind
	name: Optional[str] = None
	parent: Optional[int] = None
	span: Span = field(default_factory=Span)
	labels: list[LabelInfo] = field(default_factory=list)
	closed: bool = False

	def describe(self) -> str:
		what = f".{self.kind.value}" if self.kind in (ScopeKind.BLOCK, ScopeKind.MACRO) else self.kind.value
		return f"{what} '{self.name}'" if self.name else what


class ScopeManager:
	"""Stack of open scopes plus the table of all scopes opened so far."""

	def __init__(self) -> None:
		self.logger = logging.getLogger(__name__)
		self.scopes: list[Scope] = [Scope(id=0, kind=ScopeKind.TOP_LEVEL)]
		self._stack: list[Scope] = [self.scopes[0]]
		self._declared: list[LabelInfo] = []

	@property
	def current(self) -> Scope:
		return self._stack[-1]

	@property
	def depth(self) -> int:
		"""Number of open scopes above the top-level scope."""
		return len(self._stack) - 1

	def push(self, name: Optional[str], kind: ScopeKind, span: Optional[Span] = None) -> Scope:
		if kind is ScopeKind.TOP_LEVEL:
			raise ValueError("the top-level scope cannot be pushed")
		scope = Scope(
			id=len(self.scopes),
			kind=kind,
			name=name or None,
			parent=self.current.id,
			span=span if span is not None else Span(),
		)
		self.scopes.append(scope)
		self._stack.append(scope)
		self.logger.debug("push scope #%d %s", scope.id, scope.describe())
		return scope

	def pop(self, expected_name: Optional[str] = None, span: Optional[Span] = None) -> Scope:
		"""
		Close the innermost scope for a `.end [name]`.

		A bare `.end` closes the innermost scope whatever its name. Nothing
		is popped when an error is raised.
		"""
		scope = self.current
		if scope.kind is ScopeKind.TOP_LEVEL:
			raise UnmatchedEndError("'.end' without an open scope", span=span)
		if scope.kind is ScopeKind.BRACE:
			raise UnmatchedEndError(
				"'.end' cannot close a '{' block",
				span=span,
				notes=[f"block opened at {scope.span}"],
			)
		if expected_name and expected_name != scope.name:
			raise ScopeMismatchError(
				f"'.end {expected_name}' does not match {scope.describe()}",
				span=span,
				found=repr(expected_name),
				expected=repr(scope.name) if scope.name else "'.end' without a name",
				notes=[f"scope opened at {scope.span}"],
			)
		return self._close()

	def close(self, scope: Scope) -> Scope:
		"""Close `scope`, which must be innermost (used for `{ }` and macro invocations)."""
		if self.current is not scope:
			raise ValueError(f"scope #{scope.id} is not the innermost open scope")
		return self._close()

	def unwind(self, depth: int) -> list[Scope]:
		"""Close scopes until `depth` scopes remain open; returns them innermost first."""
		closed: list[Scope] = []
		while self.depth > depth:
			closed.append(self._close())
		return closed

	def _close(self) -> Scope:
		scope = self._stack.pop()
		scope.closed = True
		self.logger.debug("pop scope #%d %s", scope.id, scope.describe())
		return scope

	def declare_label(self, name: str, kind: LabelKind, span: Optional[Span] = None) -> LabelInfo:
		label = LabelInfo(name=name, kind=kind, scope_id=self.current.id, span=span if span is not None else Span())
		self.current.labels.append(label)
		self._declared.append(label)
		return label

	def labels(self) -> list[LabelInfo]:
		"""All declared labels in declaration order."""
		return list(self._declared)


__all__ = [
	"ScopeKind",
	"LabelKind",
	"LABEL_MARKERS",
	"LabelInfo",
	"Scope",
	"ScopeManager",
]
