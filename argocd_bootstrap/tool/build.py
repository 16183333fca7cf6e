"""Argocd-bootstrap build action."""

import json
import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from . import plan_common


_LOGGER = logging.getLogger(__name__)


class BuildAction:
    """Build and print the plan without touching the cluster."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "build",
                help="Print the resources the add-on submits to the cluster",
                description=(
                    "Runs the add-on against an in-memory cluster and prints the "
                    "recorded steps in the order they are applied. Secret values "
                    "are redacted."
                ),
            ),
        )
        plan_common.add_plan_flags(args)
        args.add_argument(
            "--output",
            "-o",
            choices=["yaml", "json"],
            default="yaml",
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        config,
        region,
        output,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        cluster = await plan_common.build_plan(config, region)
        if output == "json":
            print(json.dumps(cluster.plan.compact_dict(), indent=2))
            return
        print(cluster.plan.yaml(), end="")
