"""The ArgoCD add-on.

The add-on installs the argo-cd chart into a cluster and, when a bootstrap
repository is configured, declares an "app of apps" Application that syncs the
repository into the cluster once the controller is running.

Deployment happens in two phases:
  - `deploy` submits the chart install and returns its handle
  - `post_deploy` runs after the rest of the cluster is provisioned and
    submits the repository credentials Secret and the bootstrap Application

Both the Secret and the Application depend on the chart install handle so they
are applied only after the controller is installed.
"""

from collections.abc import Sequence
import logging
from typing import Any

import yaml

from .aws import SecretsManagerService, SecretsService
from .cluster import Cluster
from .config import BootstrapConfig, RepoConfig
from .context import trace_context
from .credentials import parse_credential, repository_string_data
from .exceptions import InputException
from .manifest import Application, ChartInstall, NamedResource, Secret

__all__ = [
    "ArgoCDAddOn",
]

_LOGGER = logging.getLogger(__name__)


ARGOCD_CHART = "argo-cd"
ARGOCD_RELEASE = "ssp-addon"

CHART_ID = "argocd-addon"
SERVER_SERVICE_ACCOUNT_ID = "argo-cd-server"
BOOTSTRAP_SECRET_ID = "argo-bootstrap-secret"
BOOTSTRAP_APP_ID = "bootstrap-app"

SERVER_SERVICE_ACCOUNT = "argocd-server"
DEFAULT_APP_NAME = "bootstrap-apps"
DEFAULT_SECRET_NAME = "bootstrap-repo-secret"

# The controller repository config always points at this SSH key secret,
# independent of the configured credentials secret and type.
CONTROLLER_REPO_SECRET_NAME = "bootstrap-repo-secret1"
CONTROLLER_REPO_SECRET_KEY = "sshPrivateKey"


class ArgoCDAddOn:
    """Installs ArgoCD and bootstraps the app of apps from a Git repository."""

    def __init__(
        self,
        config: BootstrapConfig | None = None,
        secrets: SecretsService | None = None,
    ) -> None:
        """Initialize ArgoCDAddOn."""
        self._config = config or BootstrapConfig()
        self._secrets = secrets
        self._install_handle: NamedResource | None = None

    @property
    def config(self) -> BootstrapConfig:
        return self._config

    @property
    def install_handle(self) -> NamedResource | None:
        """Return the handle of the chart install submitted by `deploy`."""
        return self._install_handle

    @property
    def secrets(self) -> SecretsService:
        if self._secrets is None:
            self._secrets = SecretsManagerService()
        return self._secrets

    def repositories_value(self) -> str:
        """Return the controller `repositories` config as a YAML string."""
        if not (repo := self._config.bootstrap_repo):
            return ""
        return yaml.dump(
            [
                {
                    "url": repo.repo_url,
                    "sshPrivateKeySecret": {
                        "name": CONTROLLER_REPO_SECRET_NAME,
                        "key": CONTROLLER_REPO_SECRET_KEY,
                    },
                }
            ],
            sort_keys=False,
        )

    def chart_install(self) -> ChartInstall:
        """Return the install request for the argo-cd chart."""
        return ChartInstall(
            chart=ARGOCD_CHART,
            release=ARGOCD_RELEASE,
            repository=self._config.chart_repository,
            version=self._config.chart_version,
            namespace=self._config.namespace,
            values={
                "server": {
                    "serviceAccount": {"create": False},
                    "config": {"repositories": self.repositories_value()},
                }
            },
        )

    def deploy(self, cluster: Cluster) -> NamedResource:
        """Submit the argo-cd chart install to the cluster."""
        with trace_context("Deploy ArgoCD"):
            chart = self.chart_install()
            _LOGGER.debug(
                "Installing chart %s %s into namespace %s",
                chart.chart,
                chart.version,
                chart.namespace,
            )
            self._install_handle = cluster.install_chart(CHART_ID, chart)
        return self._install_handle

    async def post_deploy(
        self,
        cluster: Cluster,
        teams: Sequence[Any],
        install_handle: NamedResource | None = None,
    ) -> None:
        """Submit the credentials Secret and the bootstrap Application.

        Does nothing when no bootstrap repository is configured. Errors are not
        caught, anything already submitted to the cluster is left in place.
        """
        assert teams is not None
        if not (repo := self._config.bootstrap_repo):
            _LOGGER.debug("No bootstrap repository configured")
            return
        if (handle := install_handle or self._install_handle) is None:
            raise InputException("ArgoCD must be deployed before post_deploy")

        with trace_context("Bootstrap ArgoCD"):
            if repo.credentials_secret_name:
                await self.create_repo_secret(
                    cluster, repo.credentials_secret_name, handle
                )
            cluster.apply_manifest(
                BOOTSTRAP_APP_ID,
                [self.application(repo).to_doc()],
                overwrite=True,
                prune=True,
                depends_on=[handle],
            )

    def application(self, repo: RepoConfig) -> Application:
        """Return the app of apps for the bootstrap repository."""
        return Application(
            name=repo.name or DEFAULT_APP_NAME,
            namespace=self._config.namespace,
            repo_url=repo.repo_url,
            path=repo.path,
        )

    async def create_repo_secret(
        self,
        cluster: Cluster,
        secret_name: str,
        install_handle: NamedResource,
    ) -> None:
        """Copy the repository credentials into a Secret read by the controller."""
        if not (repo := self._config.bootstrap_repo):
            raise InputException("No bootstrap repository configured")

        service_account = cluster.add_service_account(
            SERVER_SERVICE_ACCOUNT_ID,
            name=SERVER_SERVICE_ACCOUNT,
            namespace=self._config.namespace,
            role_arn=self._config.server_role_arn,
        )
        service_account.add_managed_policy(self._config.secrets_policy)

        secret_value = await self.secrets.get_secret_value(secret_name, cluster.region)
        credential = parse_credential(secret_name, repo.credentials_type, secret_value)
        _LOGGER.debug("Creating repository secret for %s", repo.repo_url)

        secret = Secret(
            name=repo.name or DEFAULT_SECRET_NAME,
            namespace=self._config.namespace,
            string_data=repository_string_data(repo.repo_url, credential),
        )
        # Secret fields vary with the credentials type.
        cluster.apply_manifest(
            BOOTSTRAP_SECRET_ID,
            [secret.to_doc()],
            overwrite=True,
            prune=True,
            skip_validation=True,
            depends_on=[install_handle],
        )
