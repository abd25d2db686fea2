class SimulatorError(Exception):
    """Base class for simulator failures."""


class InitializationError(SimulatorError):
    """The message file could not be loaded for playback."""


class SourceNotFoundError(InitializationError):
    pass


class SourceParseError(InitializationError):
    pass


class ConfigurationError(SimulatorError, ValueError):
    """A setter rejected its input; the previous value is kept."""


class DeliveryError(SimulatorError):
    """A sink failed to accept one outgoing record."""
