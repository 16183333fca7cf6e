"""Representation of the resources submitted to the cluster.

These objects are built fresh by the add-on on every run and rendered to plain
kubernetes documents with `to_doc()` before they are handed to the cluster.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from mashumaro import DataClassDictMixin
from mashumaro.config import BaseConfig

__all__ = [
    "NamedResource",
    "ChartInstall",
    "ServiceAccount",
    "Secret",
    "Application",
]

APPLICATION_API_VERSION = "argoproj.io/v1alpha1"
APPLICATION_KIND = "Application"
SECRET_KIND = "Secret"
SERVICE_ACCOUNT_KIND = "ServiceAccount"

SECRET_TYPE_LABEL = "argocd.argoproj.io/secret-type"
REPOSITORY_SECRET_TYPE = "repository"
ROLE_ARN_ANNOTATION = "eks.amazonaws.com/role-arn"

IN_CLUSTER_SERVER = "https://kubernetes.default.svc"
DESTINATION_NAMESPACE = "default"
DEFAULT_PROJECT = "default"
# Always track the tip of the default branch.
TARGET_REVISION = "HEAD"
HELM_VALUE_FILES = ["values.yaml"]


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    def compact_dict(self) -> dict[str, Any]:
        """Return a compact dictionary representation of the object."""
        return self.to_dict()

    class Config(BaseConfig):
        omit_none = True


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a resource submitted to the cluster."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class ChartInstall(BaseManifest):
    """A request to install a helm chart as a named release."""

    chart: str
    """The name of the chart within the repository."""

    release: str
    """The name of the helm release."""

    repository: str
    """Url of the helm repository serving the chart."""

    version: str
    """The pinned version of the chart."""

    namespace: str
    """The namespace the release is installed into."""

    values: dict[str, Any] = field(default_factory=dict)
    """Values passed to the chart."""


@dataclass
class ServiceAccount(BaseManifest):
    """A workload identity for pods in the cluster."""

    kind: ClassVar[str] = SERVICE_ACCOUNT_KIND

    name: str
    namespace: str

    role_arn: str | None = None
    """IAM role assumed by pods running as this service account."""

    def to_doc(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.role_arn:
            metadata["annotations"] = {ROLE_ARN_ANNOTATION: self.role_arn}
        return {"apiVersion": "v1", "kind": self.kind, "metadata": metadata}


@dataclass
class Secret(BaseManifest):
    """A repository credentials Secret discovered by the controller."""

    kind: ClassVar[str] = SECRET_KIND

    name: str
    namespace: str

    string_data: dict[str, Any] = field(
        metadata={"serialize": "omit"}, default_factory=dict
    )
    """The string data in the Secret, never included in serialized output."""

    labels: dict[str, str] = field(
        default_factory=lambda: {SECRET_TYPE_LABEL: REPOSITORY_SECRET_TYPE}
    )

    def to_doc(self) -> dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": self.kind,
            "metadata": {
                "name": self.name,
                "namespace": self.namespace,
                "labels": dict(self.labels),
            },
            "stringData": dict(self.string_data),
        }


@dataclass
class Application(BaseManifest):
    """An Argo Application syncing a path of a Git repository into the cluster."""

    kind: ClassVar[str] = APPLICATION_KIND

    name: str
    namespace: str

    repo_url: str
    """Url of the Git repository to sync."""

    path: str | None = None
    """Path within the repository, the repository root when unset."""

    def to_doc(self) -> dict[str, Any]:
        source: dict[str, Any] = {"helm": {"valueFiles": list(HELM_VALUE_FILES)}}
        if self.path is not None:
            source["path"] = self.path
        source["repoURL"] = self.repo_url
        source["targetRevision"] = TARGET_REVISION
        return {
            "apiVersion": APPLICATION_API_VERSION,
            "kind": self.kind,
            "metadata": {"name": self.name, "namespace": self.namespace},
            "spec": {
                "destination": {
                    "namespace": DESTINATION_NAMESPACE,
                    "server": IN_CLUSTER_SERVER,
                },
                "project": DEFAULT_PROJECT,
                "source": source,
                "syncPolicy": {"automated": {}},
            },
        }
