"""Exceptions related to argocd-bootstrap."""

__all__ = [
    "BootstrapException",
    "InputException",
    "MalformedCredentials",
    "DependencyException",
    "UnsupportedSecretFormat",
    "CommandException",
    "HelmException",
    "KubectlException",
]


class BootstrapException(Exception):
    """Generic base exception used for this library."""


class InputException(BootstrapException):
    """Raised when the configuration or values are not formatted as expected."""


class MalformedCredentials(InputException):
    """Raised when a credentials secret does not hold the expected JSON object."""

    def __init__(self, secret_name: str, message: str) -> None:
        super().__init__(f"Malformed credentials in secret {secret_name}: {message}")
        self.secret_name = secret_name


class DependencyException(InputException):
    """Raised when a plan step depends on a missing step or on itself."""


class UnsupportedSecretFormat(BootstrapException):
    """Raised when a secret is stored as a binary value instead of a string."""

    def __init__(self, secret_name: str) -> None:
        super().__init__(
            f"Invalid secret format for {secret_name}. Expected string value, received binary."
        )
        self.secret_name = secret_name


class CommandException(BootstrapException):
    """Raised when there is a failure running a subcommand."""


class HelmException(CommandException):
    """Raised when there is a failure running a helm command."""


class KubectlException(CommandException):
    """Raised when there is a failure running a kubectl command."""
