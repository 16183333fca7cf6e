"""Shared fixtures for argocd-bootstrap tests."""

import pytest

from argocd_bootstrap.aws import SecretsService
from argocd_bootstrap.exceptions import UnsupportedSecretFormat
from argocd_bootstrap.plan import PlannedCluster

REGION = "us-west-2"


class FakeSecretsService(SecretsService):
    """Secrets service returning fixed values.

    A bytes value behaves like a binary secret and an exception value is raised
    as is.
    """

    def __init__(self, values: dict[str, str | bytes | Exception]) -> None:
        self.values = values
        self.calls: list[tuple[str, str]] = []

    async def get_secret_value(self, secret_name: str, region: str) -> str:
        self.calls.append((secret_name, region))
        value = self.values[secret_name]
        if isinstance(value, Exception):
            raise value
        if isinstance(value, bytes):
            raise UnsupportedSecretFormat(secret_name)
        return value


@pytest.fixture(name="secret_values")
def secret_values_fixture() -> dict[str, str | bytes | Exception]:
    return {}


@pytest.fixture(name="secrets")
def secrets_fixture(
    secret_values: dict[str, str | bytes | Exception],
) -> FakeSecretsService:
    return FakeSecretsService(secret_values)


@pytest.fixture(name="cluster")
def cluster_fixture() -> PlannedCluster:
    return PlannedCluster(region=REGION)
