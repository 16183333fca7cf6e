"""Apply a recorded plan to a live cluster using `helm` and `kubectl`.

Steps are applied one at a time in dependency order, so a manifest that
depends on the chart install is only applied once the install succeeded.
"""

import logging
from pathlib import Path
import tempfile
from typing import Any

import aiofiles
import yaml

from . import command
from .aws import IamService
from .context import trace_context
from .exceptions import CommandException, HelmException, KubectlException
from .plan import ChartStep, ManifestStep, Plan, ServiceAccountStep, Step

__all__ = [
    "PlanExecutor",
]

_LOGGER = logging.getLogger(__name__)


HELM_BIN = "helm"
KUBECTL_BIN = "kubectl"


class PlanExecutor:
    """Applies each step of a plan to the cluster in the current kube context."""

    def __init__(
        self,
        kubeconfig: Path | None = None,
        context: str | None = None,
        iam: IamService | None = None,
    ) -> None:
        """Initialize PlanExecutor."""
        self._kubeconfig = kubeconfig
        self._context = context
        self._iam = iam

    @property
    def helm_flags(self) -> list[str]:
        flags = []
        if self._kubeconfig:
            flags.extend(["--kubeconfig", str(self._kubeconfig)])
        if self._context:
            flags.extend(["--kube-context", self._context])
        return flags

    @property
    def kubectl_flags(self) -> list[str]:
        flags = []
        if self._kubeconfig:
            flags.extend(["--kubeconfig", str(self._kubeconfig)])
        if self._context:
            flags.extend(["--context", self._context])
        return flags

    async def apply(self, plan: Plan) -> None:
        """Apply all steps of the plan, stopping at the first failure."""
        steps = plan.ordered()
        _LOGGER.debug("Applying %d steps", len(steps))
        with tempfile.TemporaryDirectory() as tmp_dir:
            for step in steps:
                with trace_context(f"Apply '{step.id}'"):
                    try:
                        await self._apply_step(step, Path(tmp_dir))
                    except CommandException as err:
                        _LOGGER.error("Failed to apply step %s: %s", step.id, err)
                        raise

    async def _apply_step(self, step: Step, tmp_dir: Path) -> None:
        match step:
            case ChartStep():
                await self._install_chart(step, tmp_dir)
            case ServiceAccountStep():
                await self._create_service_account(step)
            case ManifestStep():
                await self._kubectl_apply(
                    step.documents,
                    overwrite=step.overwrite,
                    skip_validation=step.skip_validation,
                )

    async def _install_chart(self, step: ChartStep, tmp_dir: Path) -> None:
        chart = step.chart
        values_path = tmp_dir / f"{chart.release}-values.yaml"
        async with aiofiles.open(values_path, mode="w") as values_file:
            await values_file.write(yaml.dump(chart.values, sort_keys=False))
        args = [
            HELM_BIN,
            "upgrade",
            "--install",
            chart.release,
            chart.chart,
            "--repo",
            chart.repository,
            "--version",
            chart.version,
            "--namespace",
            chart.namespace,
            "--create-namespace",
            "--values",
            str(values_path),
        ]
        args.extend(self.helm_flags)
        await command.run(command.Command(args, exc=HelmException))

    async def _create_service_account(self, step: ServiceAccountStep) -> None:
        await self._kubectl_apply([step.service_account.to_doc()], overwrite=True)
        role_arn = step.service_account.role_arn
        for policy_name in step.managed_policies:
            if not role_arn or not self._iam:
                _LOGGER.warning(
                    "Service account %s has no IAM role, grant %s manually",
                    step.id,
                    policy_name,
                )
                continue
            await self._iam.attach_managed_policy(role_arn, policy_name)

    async def _kubectl_apply(
        self,
        documents: list[dict[str, Any]],
        overwrite: bool,
        skip_validation: bool = False,
    ) -> None:
        args = [KUBECTL_BIN, "apply" if overwrite else "create", "-f", "-"]
        if skip_validation:
            args.append("--validate=false")
        args.extend(self.kubectl_flags)
        content = yaml.dump_all(documents, sort_keys=False)
        await command.run(
            command.Command(args, exc=KubectlException), stdin=content.encode()
        )
