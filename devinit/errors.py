class DevinitError(Exception):
    """Base exception for devinit domain errors."""

    pass


class NotFoundError(DevinitError):
    """Raised when a name, alias or project id has no matching record."""

    pass


class ConflictError(DevinitError):
    """Raised when an alias insert would violate uniqueness."""

    pass


class PrimaryGuardViolation(DevinitError):
    """Raised when removing a primary alias that still has siblings."""

    pass


class SchemaError(DevinitError):
    """Raised when the store cannot be opened or a migration fails."""

    pass


class DecodeError(DevinitError):
    """Raised when manifest text does not decode into a valid manifest."""

    pass


class UnknownOptionError(DevinitError):
    """Raised for settings keys devinit does not recognise."""

    pass


class InvalidAliasError(DevinitError, ValueError):
    """Raised when alias text is empty or contains whitespace."""

    pass


class EditorError(DevinitError):
    """Raised when the external editor cannot be run."""

    pass


class ConfigError(DevinitError):
    """Raised when config.yaml has the wrong shape."""

    pass


class LaunchError(DevinitError):
    """Raised when a program in a manifest fails to start.

    Carries the position and display name of the failing program.
    """

    def __init__(self, index: int, name: str, reason: str):
        self.index = index
        self.name = name
        self.reason = reason
        super().__init__(f"Program {index} ({name or 'unnamed'}) failed to launch: {reason}")
