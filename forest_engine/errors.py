"""
Forest Engine: error taxonomy.

ProviderError is always recoverable and advances a fallback chain.
ResolutionFailed is terminal and only raised when mock data is disallowed.
ConfigurationError marks a malformed stored credential or flag; the
affected capability is treated as absent.
"""


class ForestEngineError(Exception):
    """Base class for all engine errors."""


class ProviderError(ForestEngineError):
    """A single route failed (network error, non-2xx status, timeout, bad body)."""

    def __init__(self, category, route, cause):
        self.category = category
        self.route = route
        self.cause = cause
        super().__init__(f"{_value(category)} via {_value(route)} failed: {cause}")


class ResolutionFailed(ForestEngineError):
    """Every route of a chain failed and the mock step was vetoed."""

    def __init__(self, category, errors=None):
        self.category = category
        self.errors = list(errors or [])
        detail = "; ".join(str(e) for e in self.errors) or "no route available"
        super().__init__(f"Could not resolve {_value(category)} data: {detail}")


class ConfigurationError(ForestEngineError):
    """Malformed value in the persisted configuration record."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration value for '{key}': {reason}")


def _value(member) -> str:
    return getattr(member, "value", str(member))
