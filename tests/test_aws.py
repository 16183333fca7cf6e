"""Tests for the AWS secrets and IAM services."""

from collections.abc import Generator
import logging

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

from argocd_bootstrap.aws import IamService, SecretsManagerService
from argocd_bootstrap.exceptions import UnsupportedSecretFormat

REGION = "us-west-2"
SECRET_ARN = "arn:aws:secretsmanager:us-west-2:123456789012:secret:my-secret-AbCdEf"


@pytest.fixture(name="session")
def session_fixture() -> boto3.session.Session:
    return boto3.session.Session(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name=REGION,
    )


@pytest.fixture(name="secrets_manager")
def secrets_manager_fixture(session: boto3.session.Session) -> SecretsManagerService:
    return SecretsManagerService(session)


@pytest.fixture(name="stubber")
def stubber_fixture(
    secrets_manager: SecretsManagerService,
) -> Generator[Stubber, None, None]:
    with Stubber(secrets_manager._client(REGION)) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


async def test_get_secret_string(
    secrets_manager: SecretsManagerService, stubber: Stubber
) -> None:
    """Test reading a secret stored as a string."""
    stubber.add_response(
        "get_secret_value",
        {"ARN": SECRET_ARN, "Name": "my-secret", "SecretString": '{"username":"bot"}'},
        {"SecretId": "my-secret"},
    )
    value = await secrets_manager.get_secret_value("my-secret", REGION)
    assert value == '{"username":"bot"}'


async def test_get_secret_binary(
    secrets_manager: SecretsManagerService, stubber: Stubber
) -> None:
    """Test a secret stored as binary is rejected."""
    stubber.add_response(
        "get_secret_value",
        {"ARN": SECRET_ARN, "Name": "my-secret", "SecretBinary": b"\x00\x01"},
        {"SecretId": "my-secret"},
    )
    with pytest.raises(UnsupportedSecretFormat, match="my-secret"):
        await secrets_manager.get_secret_value("my-secret", REGION)


async def test_get_secret_error(
    secrets_manager: SecretsManagerService,
    stubber: Stubber,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test service errors are logged and raised unchanged."""
    stubber.add_client_error(
        "get_secret_value",
        service_error_code="ResourceNotFoundException",
        service_message="Secrets Manager can't find the specified secret.",
        http_status_code=400,
        expected_params={"SecretId": "missing"},
    )
    with caplog.at_level(logging.ERROR):
        with pytest.raises(ClientError) as exc_info:
            await secrets_manager.get_secret_value("missing", REGION)

    assert exc_info.value.response["Error"]["Code"] == "ResourceNotFoundException"
    assert "Unable to read secret missing" in caplog.text


def test_client_per_region(secrets_manager: SecretsManagerService) -> None:
    """Test clients are cached for each region."""
    client = secrets_manager._client("us-east-1")
    assert client is secrets_manager._client("us-east-1")
    assert client.meta.region_name == "us-east-1"
    assert secrets_manager._client("eu-west-1").meta.region_name == "eu-west-1"


async def test_attach_managed_policy(session: boto3.session.Session) -> None:
    """Test granting a managed policy to the role in the ARN."""
    iam = IamService(session)
    with Stubber(iam.client) as stubber:
        stubber.add_response(
            "attach_role_policy",
            {},
            {
                "RoleName": "argocd-server",
                "PolicyArn": "arn:aws:iam::aws:policy/SecretsManagerReadWrite",
            },
        )
        await iam.attach_managed_policy(
            "arn:aws:iam::123456789012:role/eks/argocd-server",
            "SecretsManagerReadWrite",
        )
        stubber.assert_no_pending_responses()


async def test_attach_managed_policy_error(session: boto3.session.Session) -> None:
    """Test IAM errors are raised unchanged."""
    iam = IamService(session)
    with Stubber(iam.client) as stubber:
        stubber.add_client_error(
            "attach_role_policy",
            service_error_code="NoSuchEntity",
            http_status_code=404,
        )
        with pytest.raises(ClientError, match="NoSuchEntity"):
            await iam.attach_managed_policy(
                "arn:aws:iam::123456789012:role/missing", "SecretsManagerReadWrite"
            )
