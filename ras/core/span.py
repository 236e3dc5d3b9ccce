# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source span representation shared by tokens, AST nodes and diagnostics.

Lines and columns are 1-based and count characters; `offset` is the 0-based
UTF-8 byte offset of the first character.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class Span:
	"""Represents a source span (file, line/column range, byte offset)."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	end_line: Optional[int] = None
	end_column: Optional[int] = None
	offset: Optional[int] = None

	def shifted(self, text: str) -> "Span":
		"""Span of the position just after `text`, which must start at this span."""
		if self.line is None or self.column is None:
			return self
		line, column = self.line, self.column
		for ch in text:
			if ch == "\n":
				line += 1
				column = 1
			else:
				column += 1
		offset = None if self.offset is None else self.offset + len(text.encode("utf-8"))
		return replace(self, line=line, column=column, end_line=line, end_column=column + 1, offset=offset)

	def __str__(self) -> str:
		where = self.file or "<input>"
		if self.line is None:
			return where
		return f"{where}:{self.line}:{self.column}"


__all__ = ["Span"]
