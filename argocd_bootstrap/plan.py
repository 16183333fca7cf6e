"""An in-memory cluster that records submissions as a plan.

A `PlannedCluster` does not touch a live cluster. Every chart install,
service account and manifest is recorded as a step along with its ordering
dependencies. The resulting `Plan` can be printed for review or handed to a
`PlanExecutor` to be applied.

```python
from argocd_bootstrap.addon import ArgoCDAddOn
from argocd_bootstrap.plan import PlannedCluster

cluster = PlannedCluster(region="us-west-2")
addon = ArgoCDAddOn(config)
addon.deploy(cluster)
await addon.post_deploy(cluster, teams=[])
print(cluster.plan.yaml())
```
"""

from dataclasses import dataclass, field
from enum import StrEnum
import logging
from typing import Any

import yaml

from .cluster import Cluster, ServiceAccountHandle
from .exceptions import DependencyException, InputException
from .manifest import ChartInstall, NamedResource, ServiceAccount

__all__ = [
    "Plan",
    "PlannedCluster",
    "ChartStep",
    "ServiceAccountStep",
    "ManifestStep",
    "Step",
]

_LOGGER = logging.getLogger(__name__)


class StepKind(StrEnum):
    """Kind of submission recorded in a plan."""

    CHART = "HelmChart"
    SERVICE_ACCOUNT = "ServiceAccount"
    MANIFEST = "KubernetesManifest"


@dataclass
class ChartStep:
    """Install a helm chart."""

    id: NamedResource
    chart: ChartInstall
    depends_on: list[NamedResource] = field(default_factory=list)

    def compact_dict(self) -> dict[str, Any]:
        return {"id": str(self.id), "chart": self.chart.compact_dict()}


@dataclass
class ServiceAccountStep:
    """Create a service account and grant managed policies to its role."""

    id: NamedResource
    service_account: ServiceAccount
    managed_policies: list[str] = field(default_factory=list)
    depends_on: list[NamedResource] = field(default_factory=list)

    def compact_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": str(self.id),
            "serviceAccount": self.service_account.compact_dict(),
        }
        if self.managed_policies:
            result["managedPolicies"] = list(self.managed_policies)
        return result


@dataclass
class ManifestStep:
    """Apply a list of kubernetes documents."""

    id: NamedResource
    documents: list[dict[str, Any]]
    overwrite: bool
    prune: bool
    skip_validation: bool = False
    depends_on: list[NamedResource] = field(default_factory=list)

    def compact_dict(self) -> dict[str, Any]:
        """Return the step with the contents of any Secret documents redacted."""
        result: dict[str, Any] = {
            "id": str(self.id),
            "overwrite": self.overwrite,
            "prune": self.prune,
        }
        if self.skip_validation:
            result["skipValidation"] = True
        if self.depends_on:
            result["dependsOn"] = [str(dep) for dep in self.depends_on]
        result["documents"] = [_redact(doc) for doc in self.documents]
        return result


Step = ChartStep | ServiceAccountStep | ManifestStep


def _redact(doc: dict[str, Any]) -> dict[str, Any]:
    """Replace Secret values with placeholders so plans are safe to print."""
    if doc.get("kind") != "Secret":
        return doc
    redacted = dict(doc)
    for key in ("data", "stringData"):
        if values := doc.get(key):
            redacted[key] = {name: f"..PLACEHOLDER_{name}.." for name in values}
    return redacted


def _ready_steps(
    steps: list[Step], visited: set[NamedResource]
) -> tuple[list[Step], list[Step]]:
    """Split the steps into those that are ready vs pending."""
    ready = []
    pending = []
    for step in steps:
        if not_ready := (set(step.depends_on) - visited):
            _LOGGER.debug(
                "Step %s waiting for %s", step.id, [str(dep) for dep in not_ready]
            )
            pending.append(step)
        else:
            ready.append(step)
    return (ready, pending)


class Plan:
    """Steps submitted to a cluster in submission order."""

    def __init__(self, region: str) -> None:
        """Initialize Plan."""
        self._region = region
        self._steps: dict[NamedResource, Step] = {}

    @property
    def region(self) -> str:
        return self._region

    @property
    def steps(self) -> list[Step]:
        """Return the steps in submission order."""
        return list(self._steps.values())

    def get(self, resource_id: NamedResource) -> Step | None:
        return self._steps.get(resource_id)

    def add(self, step: Step) -> None:
        """Record a new step in the plan."""
        if step.id in self._steps:
            raise InputException(f"Plan already contains a step {step.id}")
        _LOGGER.debug("Adding step %s to plan", step.id)
        self._steps[step.id] = step

    def ordered(self) -> list[Step]:
        """Return the steps ordered so that dependencies come first.

        Steps that are ready at the same time keep their submission order.
        """
        for step in self._steps.values():
            if missing := (set(step.depends_on) - self._steps.keys()):
                raise DependencyException(
                    f"Step {step.id} depends on unknown steps: "
                    f"{sorted(str(dep) for dep in missing)}"
                )
        result: list[Step] = []
        visited: set[NamedResource] = set()
        pending = self.steps
        while pending:
            ready, pending = _ready_steps(pending, visited)
            if not ready:
                raise DependencyException(
                    f"Dependency cycle between steps: {[str(step.id) for step in pending]}"
                )
            result.extend(ready)
            visited.update(step.id for step in ready)
        return result

    def compact_dict(self) -> dict[str, Any]:
        """Return the plan in dependency order as a dictionary."""
        return {
            "region": self._region,
            "steps": [step.compact_dict() for step in self.ordered()],
        }

    def yaml(self) -> str:
        """Return a YAML string representation of compact_dict."""
        return yaml.dump(self.compact_dict(), sort_keys=False, explicit_start=True)


class PlannedServiceAccount(ServiceAccountHandle):
    """A service account recorded in a plan."""

    def __init__(self, step: ServiceAccountStep) -> None:
        """Initialize PlannedServiceAccount."""
        self._step = step

    @property
    def resource(self) -> NamedResource:
        return self._step.id

    def add_managed_policy(self, policy_name: str) -> None:
        if policy_name in self._step.managed_policies:
            return
        _LOGGER.debug("Granting %s to %s", policy_name, self._step.id)
        self._step.managed_policies.append(policy_name)


class PlannedCluster(Cluster):
    """A cluster that records all submissions in a `Plan`."""

    def __init__(self, region: str) -> None:
        """Initialize PlannedCluster."""
        self._plan = Plan(region)

    @property
    def region(self) -> str:
        return self._plan.region

    @property
    def plan(self) -> Plan:
        return self._plan

    def install_chart(self, construct_id: str, chart: ChartInstall) -> NamedResource:
        resource_id = NamedResource(StepKind.CHART, chart.namespace, construct_id)
        self._plan.add(ChartStep(id=resource_id, chart=chart))
        return resource_id

    def add_service_account(
        self,
        construct_id: str,
        name: str,
        namespace: str,
        role_arn: str | None = None,
    ) -> ServiceAccountHandle:
        resource_id = NamedResource(StepKind.SERVICE_ACCOUNT, namespace, construct_id)
        if (existing := self._plan.get(resource_id)) is not None:
            if not isinstance(existing, ServiceAccountStep):
                raise InputException(
                    f"Step {resource_id} is not a service account (was {existing.__class__.__name__})"
                )
            _LOGGER.debug("Service account %s already exists in plan", resource_id)
            return PlannedServiceAccount(existing)
        step = ServiceAccountStep(
            id=resource_id,
            service_account=ServiceAccount(
                name=name, namespace=namespace, role_arn=role_arn
            ),
        )
        self._plan.add(step)
        return PlannedServiceAccount(step)

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
        if not documents:
            raise InputException(f"Manifest {construct_id} has no documents")
        namespace = documents[0].get("metadata", {}).get("namespace")
        resource_id = NamedResource(StepKind.MANIFEST, namespace, construct_id)
        self._plan.add(
            ManifestStep(
                id=resource_id,
                documents=documents,
                overwrite=overwrite,
                prune=prune,
                skip_validation=skip_validation,
                depends_on=list(depends_on or []),
            )
        )
