"""Error taxonomy shared by the market-data client, pipeline and API."""

from __future__ import annotations


class DexSignalError(Exception):
    """Base class for all dexsignal errors."""


class UpstreamUnavailable(DexSignalError):
    """A data source answered non-2xx, timed out, or returned garbage.

    Never fatal: callers degrade the affected source to an empty result.
    """

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source}: {detail}")
        self.source = source
        self.detail = detail


class MalformedInput(DexSignalError):
    """A request is missing a required field. Maps to a client error."""


class NoMatchingData(DexSignalError):
    """The target-chain filter left nothing to work with."""


class ConfigurationMissing(DexSignalError):
    """An optional collaborator (the LLM) has no credentials configured."""
