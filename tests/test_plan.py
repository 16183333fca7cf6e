"""Tests for recording plans."""

import pytest
import yaml

from argocd_bootstrap.exceptions import DependencyException, InputException
from argocd_bootstrap.manifest import ChartInstall, NamedResource
from argocd_bootstrap.plan import (
    ChartStep,
    ManifestStep,
    Plan,
    PlannedCluster,
    ServiceAccountStep,
)

CHART = ChartInstall(
    chart="argo-cd",
    release="ssp-addon",
    repository="https://argoproj.github.io/argo-helm",
    version="3.10.0",
    namespace="argocd",
)


def _config_map(name: str) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": "argocd"},
    }


def _manifest_step(name: str, depends_on: list[NamedResource]) -> ManifestStep:
    return ManifestStep(
        id=NamedResource("KubernetesManifest", "argocd", name),
        documents=[_config_map(name)],
        overwrite=True,
        prune=True,
        depends_on=depends_on,
    )


def test_install_chart(cluster: PlannedCluster) -> None:
    """Test a chart install is recorded and returns its handle."""
    handle = cluster.install_chart("argocd-addon", CHART)
    assert handle == NamedResource("HelmChart", "argocd", "argocd-addon")
    step = cluster.plan.get(handle)
    assert isinstance(step, ChartStep)
    assert step.chart == CHART


def test_duplicate_construct_id(cluster: PlannedCluster) -> None:
    """Test a construct id can only be used once."""
    cluster.install_chart("argocd-addon", CHART)
    with pytest.raises(InputException, match="already contains"):
        cluster.install_chart("argocd-addon", CHART)


def test_service_account_created_once(cluster: PlannedCluster) -> None:
    """Test adding the same service account twice returns the existing one."""
    sa1 = cluster.add_service_account("argo-cd-server", "argocd-server", "argocd")
    sa1.add_managed_policy("SecretsManagerReadWrite")
    sa2 = cluster.add_service_account("argo-cd-server", "argocd-server", "argocd")
    sa2.add_managed_policy("SecretsManagerReadWrite")
    sa2.add_managed_policy("SecretsManagerReadOnly")

    assert sa1.resource == sa2.resource
    assert len(cluster.plan.steps) == 1
    step = cluster.plan.get(sa1.resource)
    assert isinstance(step, ServiceAccountStep)
    assert step.service_account.name == "argocd-server"
    assert step.managed_policies == ["SecretsManagerReadWrite", "SecretsManagerReadOnly"]


def test_apply_manifest(cluster: PlannedCluster) -> None:
    """Test a manifest is recorded with its flags and dependencies."""
    handle = cluster.install_chart("argocd-addon", CHART)
    cluster.apply_manifest(
        "config",
        [_config_map("config")],
        overwrite=False,
        prune=True,
        skip_validation=True,
        depends_on=[handle],
    )
    step = cluster.plan.steps[1]
    assert isinstance(step, ManifestStep)
    assert step.id == NamedResource("KubernetesManifest", "argocd", "config")
    assert not step.overwrite
    assert step.prune
    assert step.skip_validation
    assert step.depends_on == [handle]


def test_apply_empty_manifest(cluster: PlannedCluster) -> None:
    """Test a manifest needs at least one document."""
    with pytest.raises(InputException, match="no documents"):
        cluster.apply_manifest("empty", [], overwrite=True, prune=True)


def test_ordered_dependencies_first() -> None:
    """Test steps are ordered after their dependencies."""
    plan = Plan("us-west-2")
    a = _manifest_step("a", [])
    b = _manifest_step("b", [NamedResource("KubernetesManifest", "argocd", "c")])
    c = _manifest_step("c", [a.id])
    d = _manifest_step("d", [])
    for step in (a, b, c, d):
        plan.add(step)

    assert [step.id.name for step in plan.ordered()] == ["a", "d", "c", "b"]
    assert [step.id.name for step in plan.steps] == ["a", "b", "c", "d"]


def test_ordered_unknown_dependency() -> None:
    """Test a dependency on a step not in the plan."""
    plan = Plan("us-west-2")
    plan.add(_manifest_step("a", [NamedResource("HelmChart", "argocd", "missing")]))
    with pytest.raises(DependencyException, match="HelmChart/argocd/missing"):
        plan.ordered()


def test_ordered_cycle() -> None:
    """Test steps that depend on each other."""
    plan = Plan("us-west-2")
    a_id = NamedResource("KubernetesManifest", "argocd", "a")
    b_id = NamedResource("KubernetesManifest", "argocd", "b")
    plan.add(_manifest_step("a", [b_id]))
    plan.add(_manifest_step("b", [a_id]))
    with pytest.raises(DependencyException, match="cycle"):
        plan.ordered()


def test_yaml_redacts_secrets(cluster: PlannedCluster) -> None:
    """Test secret values are replaced when rendering the plan."""
    handle = cluster.install_chart("argocd-addon", CHART)
    secret = {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": "creds", "namespace": "argocd"},
        "stringData": {"url": "git@example.com/apps", "password": "tok123"},
    }
    cluster.apply_manifest(
        "creds", [secret], overwrite=True, prune=True, depends_on=[handle]
    )

    content = cluster.plan.yaml()
    assert "tok123" not in content
    doc = yaml.safe_load(content)
    assert doc["region"] == "us-west-2"
    assert [step["id"] for step in doc["steps"]] == [
        "HelmChart/argocd/argocd-addon",
        "KubernetesManifest/argocd/creds",
    ]
    manifest = doc["steps"][1]
    assert manifest["dependsOn"] == ["HelmChart/argocd/argocd-addon"]
    assert manifest["documents"][0]["stringData"] == {
        "url": "..PLACEHOLDER_url..",
        "password": "..PLACEHOLDER_password..",
    }
    # The recorded document itself is unchanged
    assert secret["stringData"]["password"] == "tok123"
