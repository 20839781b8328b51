"""Transitive resolution policy: the allow-list and the engine that applies it."""

from buildgate.policy.allowlist import (
    BUNDLED_ALLOWLIST_PATH,
    AllowList,
    load_allow_list,
    parse_allow_list,
)
from buildgate.policy.engine import PolicyReport, ResolutionPolicyEngine

__all__ = [
    "BUNDLED_ALLOWLIST_PATH",
    "AllowList",
    "PolicyReport",
    "ResolutionPolicyEngine",
    "load_allow_list",
    "parse_allow_list",
]
