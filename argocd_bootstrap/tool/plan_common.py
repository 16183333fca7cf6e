"""Shared flags and helpers for commands that run the add-on."""

from argparse import ArgumentParser
import logging
import pathlib

import boto3

from argocd_bootstrap.addon import ArgoCDAddOn
from argocd_bootstrap.aws import SecretsService
from argocd_bootstrap.config import read_config
from argocd_bootstrap.exceptions import InputException
from argocd_bootstrap.plan import PlannedCluster

_LOGGER = logging.getLogger(__name__)


def add_plan_flags(args: ArgumentParser) -> None:
    """Add flags for locating the add-on config and target region."""
    args.add_argument(
        "--config",
        help="YAML file with the add-on configuration",
        type=pathlib.Path,
        required=True,
    )
    args.add_argument(
        "--region",
        help="AWS region of the cluster, defaults to the region of the AWS profile",
        default=None,
    )


def resolve_region(region: str | None) -> str:
    """Return the explicit region or the one configured for the AWS session."""
    if region:
        return region
    if not (session_region := boto3.session.Session().region_name):
        raise InputException("No AWS region configured, use --region")
    return session_region


async def build_plan(
    config: pathlib.Path,
    region: str | None,
    secrets: SecretsService | None = None,
) -> PlannedCluster:
    """Run both add-on phases against a cluster that records the plan."""
    addon_config = await read_config(config)
    cluster = PlannedCluster(resolve_region(region))
    addon = ArgoCDAddOn(addon_config, secrets)
    addon.deploy(cluster)
    await addon.post_deploy(cluster, teams=[])
    _LOGGER.debug("Built plan with %d steps", len(cluster.plan.steps))
    return cluster
