"""
Error taxonomy for RugSentry

Only InvalidTargetError and ConfigurationError ever reach a caller of
ScanOrchestrator.scan; adapter errors are folded into the report.
"""


class RugSentryError(Exception):
    """Base class for all RugSentry errors."""


class InvalidTargetError(RugSentryError):
    """Malformed address or unsupported network. Raised before dispatch."""

    def __init__(self, message: str, network: str = "", address: str = ""):
        super().__init__(message)
        self.network = network
        self.address = address


class ConfigurationError(RugSentryError):
    """Registry or settings misconfigured (e.g. weights not summing to 1.0)."""


class AdapterError(RugSentryError):
    """An adapter could not complete its analysis."""

    def __init__(self, message: str, adapter_id: str = ""):
        super().__init__(message)
        self.adapter_id = adapter_id


class AdapterTimeout(AdapterError):
    """An adapter exceeded its deadline."""


class DataUnavailableError(AdapterError):
    """The data provider has nothing for the requested source and target."""
