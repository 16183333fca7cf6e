"""Access to AWS Secrets Manager and IAM.

The boto3 clients are blocking so every call is run in a worker thread to keep
the event loop free while waiting on the network.
"""

from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import UnsupportedSecretFormat

__all__ = [
    "SecretsService",
    "SecretsManagerService",
    "IamService",
]

_LOGGER = logging.getLogger(__name__)

MANAGED_POLICY_ARN_PREFIX = "arn:aws:iam::aws:policy/"


class SecretsService(ABC):
    """Service for reading secret values."""

    @abstractmethod
    async def get_secret_value(self, secret_name: str, region: str) -> str:
        """Return the string value of the secret.

        Raises `UnsupportedSecretFormat` when the secret holds a binary value.
        """


class SecretsManagerService(SecretsService):
    """Reads secrets from AWS Secrets Manager."""

    def __init__(self, session: boto3.session.Session | None = None) -> None:
        """Initialize SecretsManagerService."""
        self._session = session or boto3.session.Session()
        self._clients: dict[str, Any] = {}

    def _client(self, region: str) -> Any:
        if (client := self._clients.get(region)) is None:
            client = self._session.client("secretsmanager", region_name=region)
            self._clients[region] = client
        return client

    async def get_secret_value(self, secret_name: str, region: str) -> str:
        client = self._client(region)
        _LOGGER.debug("Reading secret %s in %s", secret_name, region)
        try:
            response = await asyncio.to_thread(
                client.get_secret_value, SecretId=secret_name
            )
        except (ClientError, BotoCoreError) as err:
            _LOGGER.error("Unable to read secret %s in %s: %s", secret_name, region, err)
            raise
        if (secret_string := response.get("SecretString")) is not None:
            return str(secret_string)
        if response.get("SecretBinary") is not None:
            raise UnsupportedSecretFormat(secret_name)
        _LOGGER.warning("Secret %s has no value", secret_name)
        return ""


def _role_name(role_arn: str) -> str:
    """Return the role name from an ARN such as arn:aws:iam::123:role/path/name."""
    return role_arn.rsplit("/", 1)[-1]


class IamService:
    """Grants AWS managed policies to IAM roles."""

    def __init__(self, session: boto3.session.Session | None = None) -> None:
        """Initialize IamService."""
        self._session = session or boto3.session.Session()
        self._iam: Any = None

    @property
    def client(self) -> Any:
        if self._iam is None:
            self._iam = self._session.client("iam")
        return self._iam

    async def attach_managed_policy(self, role_arn: str, policy_name: str) -> None:
        """Attach the AWS managed policy to the role."""
        role_name = _role_name(role_arn)
        policy_arn = f"{MANAGED_POLICY_ARN_PREFIX}{policy_name}"
        _LOGGER.debug("Attaching %s to role %s", policy_arn, role_name)
        try:
            await asyncio.to_thread(
                self.client.attach_role_policy,
                RoleName=role_name,
                PolicyArn=policy_arn,
            )
        except (ClientError, BotoCoreError) as err:
            _LOGGER.error(
                "Unable to attach %s to role %s: %s", policy_arn, role_name, err
            )
            raise
