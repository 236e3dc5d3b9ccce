# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
ras: assembler front end.

Source text goes in; a macro-expanded statement tree, the label/scope table
and a list of diagnostics come out. The entrypoint is `ras.lang.parse_source`.
"""

__all__ = []
