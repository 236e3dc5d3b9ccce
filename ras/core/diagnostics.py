"""
Common diagnostic structure handed to front-end callers.

Rendering is the caller's job; a Diagnostic is a message plus a span and a
few labels that make JSON output and test expectations unambiguous.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .span import Span


@dataclass
class Diagnostic:
	"""Represents a front-end diagnostic (error/warning/etc.)."""

	message: str
	code: str | None = None
	# Diagnostic phase label: "lexer", "parser", "macro" or "scope".
	phase: str | None = None
	severity: str = "error"
	span: Span = field(default_factory=Span)  # Source location (Span() denotes unknown).
	notes: list[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	def to_dict(self) -> dict[str, Any]:
		out: dict[str, Any] = {
			"severity": self.severity,
			"message": self.message,
			"file": self.span.file,
			"line": self.span.line,
			"column": self.span.column,
			"offset": self.span.offset,
		}
		if self.code is not None:
			out["code"] = self.code
		if self.phase is not None:
			out["phase"] = self.phase
		if self.notes:
			out["notes"] = list(self.notes)
		return out


__all__ = ["Diagnostic"]
