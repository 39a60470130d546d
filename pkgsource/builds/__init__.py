"""Build orchestration module.

This module handles:
- Input fingerprints and cache key computation
- Compiler invocation per build unit
- Build records and cache reuse
"""

from pkgsource.builds.models import BuildRecord

__all__ = ["BuildRecord"]

# Lazy imports for submodules to avoid circular imports
# Access via pkgsource.builds.service, etc.
