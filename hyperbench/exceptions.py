"""Error taxonomy for benchmark runs.

Everything raised from here is fatal to a run and surfaces at the CLI entry
point. Per-request failures are never raised; they become failed outcomes.
"""


class HyperbenchError(Exception):
    """Base class for fatal harness errors."""


class ConfigurationError(HyperbenchError):
    """A required setting is missing or malformed."""


class AuthenticationError(HyperbenchError):
    """The bearer token could not be obtained."""


class TransportConnectError(HyperbenchError):
    """A transport could not establish its initial connection."""
