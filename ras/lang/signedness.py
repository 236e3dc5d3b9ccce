# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Signedness resolution.

The current default signedness lives in an immutable SignednessContext that
the parser threads through every resolution call; `.signed` / `.unsigned`
produce a new context instead of mutating shared state. Resolution only
annotates operator nodes and never changes the shape of the tree.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from .ops import OpInfo, SignMode


class Signedness(Enum):
	SIGNED = "signed"
	UNSIGNED = "unsigned"


@dataclass(frozen=True)
class SignednessContext:
	default: Signedness = Signedness.SIGNED

	def with_default(self, default: Signedness) -> "SignednessContext":
		if default is self.default:
			return self
		return replace(self, default=default)


@dataclass(frozen=True)
class ResolvedOp:
	op: OpInfo
	signedness: Optional[Signedness]


_FORCED = {
	SignMode.SIGNED: Signedness.SIGNED,
	SignMode.UNSIGNED: Signedness.UNSIGNED,
	SignMode.IMPLICIT_SIGNED: Signedness.SIGNED,
	SignMode.IMPLICIT_UNSIGNED: Signedness.UNSIGNED,
}

DIRECTIVES = {
	".signed": Signedness.SIGNED,
	".unsigned": Signedness.UNSIGNED,
}


def resolve(op: OpInfo, ctx: SignednessContext) -> tuple[ResolvedOp, SignednessContext]:
	"""
	Resolve the signedness attached to `op` under `ctx`.

	Returns the resolved operator and the context the operator's operand(s)
	must be parsed with. Only the implicit `+:` / `%:` prefixes change it.
	"""
	if not op.sign_sensitive:
		return ResolvedOp(op, None), ctx
	if op.sign is SignMode.AMBIENT:
		return ResolvedOp(op, ctx.default), ctx
	forced = _FORCED[op.sign]
	if op.sign in (SignMode.IMPLICIT_SIGNED, SignMode.IMPLICIT_UNSIGNED):
		return ResolvedOp(op, forced), ctx.with_default(forced)
	return ResolvedOp(op, forced), ctx


def apply_directive(name: str, ctx: SignednessContext) -> SignednessContext:
	"""Return the context after a `.signed` / `.unsigned` directive."""
	try:
		return ctx.with_default(DIRECTIVES[name])
	except KeyError:
		raise ValueError(f"not a signedness directive: {name!r}") from None


__all__ = [
	"Signedness",
	"SignednessContext",
	"ResolvedOp",
	"DIRECTIVES",
	"resolve",
	"apply_directive",
]
