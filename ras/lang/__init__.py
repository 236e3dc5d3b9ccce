# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Assembler front end: lexing, macro expansion and parsing for one source text.

`parse_source` is the driver-facing entrypoint. It runs a fresh Parser (own
macro table, scope stack and signedness context) and converts raised
AsmErrors into Diagnostics, so callers only ever see a ParseResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ras.core.diagnostics import Diagnostic
from ras.core.errors import AsmError

from .ast import Module
from .config import FrontEndConfig
from .lexer import Lexer, tokenize
from .macros import MacroTable
from .parser import Parser
from .scope import LabelInfo, Scope


@dataclass
class ParseResult:
	# None when parsing stopped at the first error (recover=False).
	module: Optional[Module]
	scopes: List[Scope] = field(default_factory=list)
	labels: List[LabelInfo] = field(default_factory=list)
	macros: MacroTable = field(default_factory=MacroTable)
	diagnostics: List[Diagnostic] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return self.module is not None and not any(d.severity == "error" for d in self.diagnostics)


def parse_source(source: str, *, file: Optional[str] = None, config: Optional[FrontEndConfig] = None) -> ParseResult:
	parser = Parser(config, file=file)
	module: Optional[Module]
	try:
		module = parser.parse_module(source)
	except AsmError as err:
		parser.diagnostics.append(err.to_diagnostic())
		module = None
	return ParseResult(
		module=module,
		scopes=list(parser.scopes.scopes),
		labels=parser.scopes.labels(),
		macros=parser.macros,
		diagnostics=parser.diagnostics,
	)


__all__ = [
	"FrontEndConfig",
	"Lexer",
	"ParseResult",
	"Parser",
	"parse_source",
	"tokenize",
]
