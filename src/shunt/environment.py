"""Compose the environment each child process starts with."""

from collections.abc import Mapping


def compose_environment(
    inherited: Mapping[str, str], patch: Mapping[str, str | None]
) -> dict[str, str]:
    """Apply a per-command patch to the inherited environment.

    String values set or overwrite a variable. ``None`` removes it; removing a
    variable that is not present is not an error. Patch entries are applied
    in order and the inherited mapping is never modified.
    """
    env = dict(inherited)
    for key, value in patch.items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = value
    return env


def environment_list(env: Mapping[str, str]) -> tuple[str, ...]:
    """Render an environment mapping as ``NAME=value`` strings."""
    return tuple(f"{key}={value}" for key, value in env.items())
