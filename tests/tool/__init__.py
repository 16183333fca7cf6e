"""Test helpers for argocd-bootstrap tools."""

from argocd_bootstrap.command import Command, run

ARGOCD_BOOTSTRAP_BIN = "argocd-bootstrap"


async def run_command(args: list[str], env: dict[str, str] | None = None) -> str:
    return await run(Command([ARGOCD_BOOTSTRAP_BIN] + args, env=env))
