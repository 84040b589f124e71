"""Policy module: config resolver, constraint registry, payload allow-lists."""

from recordguard.policy.allowlist import PayloadAllowList
from recordguard.policy.registry import SchemaConstraintRegistry
from recordguard.policy.resolver import PolicyResolver

__all__ = ["PayloadAllowList", "PolicyResolver", "SchemaConstraintRegistry"]
