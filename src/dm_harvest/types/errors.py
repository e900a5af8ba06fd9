class HarvestError(Exception):
    """Base class for harvest failures."""


class TransientExtractionError(HarvestError):
    """A single item's fields could not be read. Skip the item and keep going."""


class EnvironmentTimeoutError(HarvestError):
    """A reveal, open or close action took longer than its bound."""


class FatalSetupError(HarvestError):
    """The environment never became ready (e.g. the conversation list never rendered)."""
