"""Domain-specific errors for mosfetctl."""


class MosfetctlError(Exception):
    """Base error for mosfetctl."""


class ArgumentError(MosfetctlError):
    """Raised when a command argument is outside its domain."""


class ArgumentCountError(ArgumentError):
    """Raised when a command receives the wrong number of values."""


class ConfigLoadError(MosfetctlError):
    """Raised when reading a configuration file fails."""


class ConfigValidationError(MosfetctlError):
    """Raised when a configuration file does not conform to schema or semantics."""


class DiscoveryError(MosfetctlError):
    """Raised when no candidate address answers for a stack level."""


class BusError(MosfetctlError):
    """Base bus error."""


class BusIoError(BusError):
    """Raised when a register transaction fails."""


class BusLockError(BusError):
    """Raised when the cross-process bus semaphore cannot be used."""


class VerifyError(BusError):
    """Raised when a written value is never confirmed by read-back."""
