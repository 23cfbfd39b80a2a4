"""Custom exception classes for Shipwright."""


class ShipwrightError(Exception):
    """Base exception for configuration and resolution errors."""

    pass


class UnknownNetworkError(ShipwrightError, ValueError):
    """Raised when the requested network is not declared."""

    def __init__(self, network: str, known: list[str] | None = None):
        self.network = network
        self.known = list(known or [])
        message = f"Network {network!r} is not declared"
        if self.known:
            message += f" (declared: {', '.join(self.known)})"
        super().__init__(message)


class MissingCredentialsError(ShipwrightError, ValueError):
    """Raised when a signer is required but none resolved for a network."""

    def __init__(self, network: str):
        self.network = network
        super().__init__(
            f"Network {network!r} has no signing credentials. "
            "Set PRIVATE_KEY or add the referenced keys to the secrets file."
        )


class MalformedSecretError(ShipwrightError, ValueError):
    """Raised when secret material is missing or has the wrong shape.

    The message names the secret entry, never its value.
    """

    def __init__(self, reference: str, reason: str, network: str | None = None):
        self.reference = reference
        self.reason = reason
        self.network = network
        prefix = f"Network {network!r}: " if network else ""
        super().__init__(f"{prefix}secret {reference!r} {reason}")


class InvalidDeclarationError(ShipwrightError, ValueError):
    """Raised when a static network declaration is invalid."""

    def __init__(self, network: str, field: str, reason: str):
        self.network = network
        self.field = field
        super().__init__(f"Network {network!r}: field {field!r} {reason}")


class SecretsFileNotFoundError(ShipwrightError, FileNotFoundError):
    """Raised when a required secrets file does not exist."""

    pass
