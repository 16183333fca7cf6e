"""Interface to the cluster the add-on is deployed into.

The add-on never talks to the kubernetes API directly. It submits chart
installs, workload identities and manifests to a `Cluster` which decides how
and when they are applied. Submissions may declare ordering dependencies on
earlier submissions using the `NamedResource` handle returned for them.
"""

from abc import ABC, abstractmethod
from typing import Any

from .manifest import ChartInstall, NamedResource

__all__ = [
    "Cluster",
    "ServiceAccountHandle",
]


class ServiceAccountHandle(ABC):
    """A workload identity in the cluster that can be granted permissions."""

    @property
    @abstractmethod
    def resource(self) -> NamedResource:
        """Return the identifier of the service account submission."""

    @abstractmethod
    def add_managed_policy(self, policy_name: str) -> None:
        """Grant the AWS managed policy to the role behind the service account."""


class Cluster(ABC):
    """A cluster accepting chart installs and manifests."""

    @property
    @abstractmethod
    def region(self) -> str:
        """Return the cloud region the cluster is deployed in."""

    @abstractmethod
    def install_chart(self, construct_id: str, chart: ChartInstall) -> NamedResource:
        """Submit a chart install and return a handle usable as a dependency."""

    @abstractmethod
    def add_service_account(
        self,
        construct_id: str,
        name: str,
        namespace: str,
        role_arn: str | None = None,
    ) -> ServiceAccountHandle:
        """Create the service account, or return it if already created."""

    @abstractmethod
    def apply_manifest(
        self,
        construct_id: str,
        documents: list[dict[str, Any]],
        *,
        overwrite: bool,
        prune: bool,
        skip_validation: bool = False,
        depends_on: list[NamedResource] | None = None,
    ) -> None:
        """Submit kubernetes documents, applied after everything in `depends_on`."""
