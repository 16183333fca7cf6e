"""Argocd-bootstrap apply action."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import pathlib
from typing import cast

from argocd_bootstrap.apply import PlanExecutor
from argocd_bootstrap.aws import IamService

from . import plan_common


_LOGGER = logging.getLogger(__name__)


class ApplyAction:
    """Install ArgoCD and the bootstrap application into a live cluster."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "apply",
                help="Apply the add-on to a cluster using helm and kubectl",
                description=(
                    "Builds the plan then installs the argo-cd chart and applies "
                    "the bootstrap resources with helm and kubectl."
                ),
            ),
        )
        plan_common.add_plan_flags(args)
        args.add_argument(
            "--kubeconfig",
            help="Path to the kubeconfig file, defaults to the kubectl default",
            type=pathlib.Path,
            default=None,
        )
        args.add_argument(
            "--context",
            help="Name of the kubeconfig context to use",
            default=None,
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        config,
        region,
        kubeconfig,
        context,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        cluster = await plan_common.build_plan(config, region)
        executor = PlanExecutor(kubeconfig=kubeconfig, context=context, iam=IamService())
        await executor.apply(cluster.plan)
        print(f"Applied {len(cluster.plan.steps)} steps")
