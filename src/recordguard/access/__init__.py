"""Access module: role/ownership decision engine."""

from recordguard.access.engine import AccessDecisionEngine

__all__ = ["AccessDecisionEngine"]
