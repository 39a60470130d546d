"""pkgsource - locate, discover and build versioned package sources.

This package resolves package identifiers to source trees inside a
workspace (fetching them with git when absent), discovers their build
units by naming convention, and drives compilation through a build cache.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
