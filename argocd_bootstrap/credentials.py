"""Repository credentials read from a secrets service.

The stored secret value is interpreted according to the configured
`CredentialsType`:
  - SSH: the value is the private key as plain text
  - USERNAME / TOKEN: the value is a JSON object whose attributes (typically
    `username` and `password`) are copied into the repository Secret
  - unset: no credentials, the repository is accessed anonymously
"""

from dataclasses import dataclass, field
import json
import logging
from typing import Any

from .config import CredentialsType
from .exceptions import MalformedCredentials

__all__ = [
    "Credential",
    "SSHCredential",
    "UserPassCredential",
    "NoCredential",
    "parse_credential",
    "repository_string_data",
]

_LOGGER = logging.getLogger(__name__)

SSH_PRIVATE_KEY = "sshPrivateKey"


@dataclass(frozen=True)
class SSHCredential:
    """An SSH private key."""

    private_key: str = field(repr=False)

    def string_data(self) -> dict[str, Any]:
        return {SSH_PRIVATE_KEY: self.private_key}


@dataclass(frozen=True)
class UserPassCredential:
    """Attributes such as username and password or token."""

    fields: dict[str, Any] = field(repr=False)

    def string_data(self) -> dict[str, Any]:
        return dict(self.fields)


@dataclass(frozen=True)
class NoCredential:
    """Anonymous access."""

    def string_data(self) -> dict[str, Any]:
        return {}


Credential = SSHCredential | UserPassCredential | NoCredential


def parse_credential(
    secret_name: str,
    credentials_type: CredentialsType | None,
    secret_value: str,
) -> Credential:
    """Return the credential encoded in the secret value."""
    match credentials_type:
        case CredentialsType.SSH:
            return SSHCredential(private_key=secret_value)
        case CredentialsType.USERNAME | CredentialsType.TOKEN:
            try:
                fields = json.loads(secret_value)
            except json.JSONDecodeError as err:
                raise MalformedCredentials(
                    secret_name, f"value is not valid JSON: {err}"
                ) from err
            if not isinstance(fields, dict):
                raise MalformedCredentials(
                    secret_name, f"expected JSON object but was {type(fields).__name__}"
                )
            return UserPassCredential(fields=fields)
        case _:
            _LOGGER.debug(
                "Secret %s has no credentials type, using anonymous access", secret_name
            )
            return NoCredential()


def repository_string_data(repo_url: str, credential: Credential) -> dict[str, Any]:
    """Return the Secret string data for a repository and its credentials.

    Attributes of the credential take precedence over the repository url.
    """
    return {"url": repo_url, **credential.string_data()}
