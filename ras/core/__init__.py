"""
ras.core: shared front-end plumbing used by every stage.

Modules:
  - span: source positions (line/column/byte offset)
  - diagnostics: Diagnostic records handed to callers
  - errors: structured AsmError hierarchy raised inside the front end
"""
