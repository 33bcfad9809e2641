"""
qualinfer.core: shared identifiers, type table and diagnostics.

Modules:
  - ids: canonical TargetId/Qualifier/TopId keys
  - types_core: TypeId/TypeTable for concrete (fully known) types
  - span: source spans for constraint scripts
  - diagnostics: Diagnostic record used by the driver
"""

__all__ = [
    "ids",
    "types_core",
    "span",
    "diagnostics",
]
