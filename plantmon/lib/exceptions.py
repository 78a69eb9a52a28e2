"""Custom exceptions for the plant monitor.

Provides a hierarchy of domain-specific exceptions for better error handling
and more informative error messages throughout the application.
"""


class PlantmonError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(PlantmonError):
    """Raised when configuration values are invalid or inconsistent."""


class LevelConfigurationError(ConfigurationError):
    """Raised when a level set does not tile 0-100 without gaps."""


class QuantizationError(PlantmonError):
    """Base exception for readings that cannot be assigned a level.

    These point at a misconfigured level set rather than a transient
    condition, so they are never retried.
    """


class OutOfRangeError(QuantizationError):
    """Raised when a value matches no level, even with the hysteresis margin."""

    def __init__(self, value: int) -> None:
        super().__init__(f"Value {value} does not match any configured level")
        self.value = value


class AmbiguousOverlapError(QuantizationError):
    """Raised when a value matches more than one level without the margin."""

    def __init__(self, value: int, names: list[str]) -> None:
        super().__init__(
            f"Value {value} matches overlapping levels: {', '.join(names)}"
        )
        self.value = value
        self.names = names
