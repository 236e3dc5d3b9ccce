# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structured errors raised inside the front end.

Every error carries a stable code, a phase label and a Span. The driver
catches AsmError at statement boundaries and turns it into a Diagnostic; no
error escapes `parse_source` as an exception.
"""

from __future__ import annotations

from typing import Any, Optional

from .diagnostics import Diagnostic
from .span import Span


class AsmError(Exception):
	"""Base class for lexical, syntax, macro and scope errors."""

	phase = "parser"
	default_code = "E-ASM"

	def __init__(
		self,
		message: str,
		*,
		span: Optional[Span] = None,
		code: Optional[str] = None,
		found: Optional[str] = None,
		expected: Optional[str] = None,
		notes: Optional[list[str]] = None,
	) -> None:
		super().__init__(message)
		self.message = message
		self.span = span if span is not None else Span()
		self.code = code or self.default_code
		self.found = found
		self.expected = expected
		self.notes = list(notes or [])

	def __str__(self) -> str:
		return self.format_human()

	def format_human(self) -> str:
		parts = [f"{self.span}: [{self.code}] {self.message}"]
		if self.found is not None:
			parts.append(f"found={self.found}")
		if self.expected is not None:
			parts.append(f"expected={self.expected}")
		return " ".join(parts)

	def to_dict(self) -> dict[str, Any]:
		return {
			"code": self.code,
			"phase": self.phase,
			"message": self.message,
			"found": self.found,
			"expected": self.expected,
			"line": self.span.line,
			"column": self.span.column,
			"offset": self.span.offset,
		}

	def to_diagnostic(self) -> Diagnostic:
		notes = list(self.notes)
		if self.found is not None:
			notes.append(f"found {self.found}")
		if self.expected is not None:
			notes.append(f"expected {self.expected}")
		return Diagnostic(
			message=self.message,
			code=self.code,
			phase=self.phase,
			severity="error",
			span=self.span,
			notes=notes,
		)


class LexError(AsmError):
	"""Invalid escape, malformed number, unterminated literal or illegal character."""

	phase = "lexer"
	default_code = "E-LEX"


class ParseError(AsmError):
	"""Unexpected token, unmatched delimiter or incomplete statement."""

	phase = "parser"
	default_code = "E-PARSE"


class MacroError(AsmError):
	phase = "macro"
	default_code = "E-MACRO"


class UnknownMacroError(MacroError):
	default_code = "E-MACRO-UNKNOWN"


class DuplicateDefinitionError(MacroError):
	default_code = "E-MACRO-DUPLICATE"


class ArityError(MacroError):
	default_code = "E-MACRO-ARITY"


class VariadicPositionError(MacroError):
	default_code = "E-MACRO-VARIADIC"


class RecursionLimitError(MacroError):
	default_code = "E-MACRO-RECURSION"


class ScopeError(AsmError):
	phase = "scope"
	default_code = "E-SCOPE"


class ScopeMismatchError(ScopeError):
	default_code = "E-SCOPE-MISMATCH"


class UnmatchedEndError(ScopeError):
	default_code = "E-SCOPE-UNMATCHED-END"


class UnclosedScopeError(ScopeError):
	default_code = "E-SCOPE-UNCLOSED"


__all__ = [
	"AsmError",
	"LexError",
	"ParseError",
	"MacroError",
	"UnknownMacroError",
	"DuplicateDefinitionError",
	"ArityError",
	"VariadicPositionError",
	"RecursionLimitError",
	"ScopeError",
	"ScopeMismatchError",
	"UnmatchedEndError",
	"UnclosedScopeError",
]
