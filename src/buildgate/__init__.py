"""
buildgate — multi-module build configuration layer.

Purpose
- Classify every module of a build by its packaging kind and apply the matching
  toolchain configuration exactly once.
- Deny transitive dependency resolution for every resolution scope that is not on
  an explicit, versioned allow-list.
- Provision the pinned ktlint artifact by URL and SHA-256 before lint actions run.

Import boundary rules
- No side effects at import time (no config loading, no logging init).
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
