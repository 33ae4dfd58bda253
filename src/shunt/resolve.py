"""Turn declared commands into launch-ready ones."""

import logging
from collections.abc import Mapping
from pathlib import Path

from shunt.environment import compose_environment, environment_list
from shunt.models import CommandSpec, ResolvedCommand
from shunt.workdir import resolve_workdir

log = logging.getLogger(__name__)


def resolve_command(
    spec: CommandSpec, config_dir: Path, inherited_env: Mapping[str, str]
) -> ResolvedCommand:
    """Materialize the working directory and environment for one command."""
    workdir = resolve_workdir(spec.workdir, config_dir)
    env = compose_environment(inherited_env, spec.env)
    log.debug("resolved %s: workdir=%s argv=%r", spec.name, workdir, spec.argv)
    return ResolvedCommand(
        name=spec.name,
        argv=tuple(spec.argv),
        workdir=workdir,
        env=environment_list(env),
        tty=spec.tty,
    )


def resolve_commands(
    specs: list[CommandSpec], config_dir: Path, inherited_env: Mapping[str, str]
) -> list[ResolvedCommand]:
    """Resolve every command, keeping declaration order."""
    return [resolve_command(spec, config_dir, inherited_env) for spec in specs]
