"""Configuration objects for the ArgoCD add-on.

Configuration is usually read from a YAML file using the same camelCase keys
as the add-on properties, for example:

```yaml
namespace: argocd
bootstrapRepo:
  repoUrl: git@github.com:example/apps.git
  path: envs/dev
  credentialsSecretName: github-ssh-key
  credentialsType: SSH
```

Any key left out falls back to the defaults on `BootstrapConfig`.
"""

from dataclasses import dataclass, field
from enum import StrEnum
import logging
from pathlib import Path
from typing import Any

import aiofiles
from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import ExtraKeysError, InvalidFieldValue, MissingField
import yaml

from .exceptions import InputException

__all__ = [
    "CredentialsType",
    "RepoConfig",
    "BootstrapConfig",
    "read_config",
]

_LOGGER = logging.getLogger(__name__)


DEFAULT_NAMESPACE = "argocd"
ARGOCD_CHART_REPOSITORY = "https://argoproj.github.io/argo-helm"
ARGOCD_CHART_VERSION = "3.10.0"

# Grants read and write access to every secret in the account. Narrow this to a
# read-only policy scoped to the credentials secret where possible.
DEFAULT_SECRETS_POLICY = "SecretsManagerReadWrite"


class CredentialsType(StrEnum):
    """How the credentials secret for a repository is encoded."""

    USERNAME = "USERNAME"
    """A JSON object with `username` and `password` attributes."""

    TOKEN = "TOKEN"
    """A JSON object with any non-empty `username` and the token as `password`."""

    SSH = "SSH"
    """A plain text SSH private key."""


@dataclass(frozen=True)
class RepoConfig(DataClassDictMixin):
    """A Git repository holding the bootstrap application and how to access it."""

    repo_url: str = field(metadata=field_options(alias="repoUrl"))
    """Url of the Git repository."""

    path: str | None = None
    """Path within the repository."""

    name: str | None = None
    """Optional name for the bootstrap application and its credentials secret."""

    credentials_secret_name: str | None = field(
        default=None, metadata=field_options(alias="credentialsSecretName")
    )
    """Secret in AWS Secrets Manager with the credentials for the repository.

    The secret must exist in the same region as the cluster.
    """

    credentials_type: CredentialsType | None = field(
        default=None, metadata=field_options(alias="credentialsType")
    )
    """Encoding of the credentials secret, only used with `credentials_secret_name`."""

    def __post_init__(self) -> None:
        if not self.repo_url:
            raise InputException("Invalid bootstrap repository missing repoUrl")

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True
        forbid_extra_keys = True


@dataclass(frozen=True)
class BootstrapConfig(DataClassDictMixin):
    """Configuration options for the ArgoCD add-on."""

    namespace: str = DEFAULT_NAMESPACE
    """Namespace the controller is installed into."""

    bootstrap_repo: RepoConfig | None = field(
        default=None, metadata=field_options(alias="bootstrapRepo")
    )
    """If set, the app of apps in this repository is bootstrapped after install."""

    chart_version: str = field(
        default=ARGOCD_CHART_VERSION, metadata=field_options(alias="chartVersion")
    )
    """Pinned version of the argo-cd chart."""

    chart_repository: str = field(
        default=ARGOCD_CHART_REPOSITORY,
        metadata=field_options(alias="chartRepository"),
    )
    """Helm repository serving the argo-cd chart."""

    secrets_policy: str = field(
        default=DEFAULT_SECRETS_POLICY, metadata=field_options(alias="secretsPolicy")
    )
    """AWS managed policy granted to the controller to read the credentials secret."""

    server_role_arn: str | None = field(
        default=None, metadata=field_options(alias="serverRoleArn")
    )
    """IAM role bound to the argocd-server service account."""

    @classmethod
    def from_overrides(cls, overrides: dict[str, Any] | None = None) -> "BootstrapConfig":
        """Return a config with the overrides merged on top of the defaults."""
        values = {**cls().to_dict(), **(overrides or {})}
        try:
            return cls.from_dict(values)
        except (ExtraKeysError, MissingField, InvalidFieldValue, ValueError) as err:
            raise InputException(f"Invalid add-on configuration: {err}") from err

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True
        forbid_extra_keys = True


async def read_config(config_path: Path) -> BootstrapConfig:
    """Return the add-on configuration stored in a YAML file."""
    async with aiofiles.open(str(config_path)) as config_file:
        content = await config_file.read()
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise InputException(f"Config file {config_path} is not valid yaml: {err}") from err
    if doc is None:
        _LOGGER.debug("Config file %s is empty, using defaults", config_path)
        doc = {}
    if not isinstance(doc, dict):
        raise InputException(
            f"Config file {config_path} expected dictionary but was {type(doc)}"
        )
    return BootstrapConfig.from_overrides(doc)
