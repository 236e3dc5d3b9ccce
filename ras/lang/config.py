# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Front-end options. One FrontEndConfig is passed explicitly per compilation unit."""

from __future__ import annotations

from dataclasses import dataclass

from .signedness import Signedness

DEFAULT_RECURSION_LIMIT = 64


@dataclass(frozen=True)
class FrontEndConfig:
	# Bounds nested macro expansion and brace-block nesting combined.
	recursion_limit: int = DEFAULT_RECURSION_LIMIT
	# Resume at the next statement boundary after an error instead of stopping.
	recover: bool = False
	default_signedness: Signedness = Signedness.SIGNED

	def __post_init__(self) -> None:
		if self.recursion_limit < 1:
			raise ValueError(f"recursion_limit must be positive, got {self.recursion_limit}")


__all__ = ["FrontEndConfig", "DEFAULT_RECURSION_LIMIT"]
