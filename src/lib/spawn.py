"""
Subprocess spawning for plugin commands

Plugins receive document variables through their environment:

    ZS=<path to zs>
    ZS_OUTDIR=<output directory>
    ZS_<UPPERCASED_KEY>=<value>      one per variable

The environment is built from an explicit, immutable SpawnEnvironment (a
snapshot of the host environment taken once) instead of mutating os.environ,
so nothing leaks from one document's build into the next.
"""

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from ..models.document import VariableMap
from .errors import CommandFailed, CommandNotFound
from .log import LOG, logger

ENV_PREFIX = "ZS_"


def globals_collect(environ: Optional[Mapping[str, str]] = None) -> VariableMap:
    """
    Collect global document variables from the host environment

    Every ZS_<NAME>=<value> entry becomes the variable <name> (lower-cased).
    This is how a plugin calling back into zs sees its caller's variables.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Returns:
        New VariableMap

    Example:
        >>> globals_collect({"ZS_TITLE": "Home", "PATH": "/bin"})
        {'title': 'Home'}
    """
    if environ is None:
        environ = os.environ
    return {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in environ.items()
        if key.startswith(ENV_PREFIX) and len(key) > len(ENV_PREFIX)
    }


@dataclass(frozen=True)
class SpawnEnvironment:
    """
    Immutable key-value configuration for child processes

    Attributes:
        base: Snapshot of the host environment
        tool_path: Exported as ZS
        output_dir: Exported as ZS_OUTDIR
        cwd: Working directory of child processes (the site root)
    """
    base: Mapping[str, str]
    tool_path: str
    output_dir: str
    cwd: Path = field(default=Path("."))

    @classmethod
    def fromHost(
        cls,
        tool_path: str,
        output_dir: str,
        cwd: Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "SpawnEnvironment":
        """Snapshot the current (or given) environment"""
        snapshot = dict(os.environ if environ is None else environ)
        return cls(
            base=MappingProxyType(snapshot),
            tool_path=tool_path,
            output_dir=output_dir,
            cwd=Path(cwd),
        )

    def environ_build(self, variables: Optional[VariableMap] = None) -> Dict[str, str]:
        """
        Build the child environment for one invocation

        Document variables override tool entries, which override the host.

        Args:
            variables: Document variables to export (may be None)

        Returns:
            Fresh dict suitable for subprocess env=
        """
        env = dict(self.base)
        env["ZS"] = self.tool_path
        env["ZS_OUTDIR"] = self.output_dir
        for key, value in (variables or {}).items():
            env[ENV_PREFIX + key.upper()] = value
        return env

    @property
    def search_path(self) -> Optional[str]:
        """PATH used for executable lookup"""
        return self.base.get("PATH")


def process_run(
    name: str,
    program: Path,
    args: List[str],
    spawn_env: SpawnEnvironment,
    variables: Optional[VariableMap] = None,
) -> str:
    """
    Run a program and capture its standard output

    Blocks until the child exits; there is no timeout.

    Args:
        name: Command name (for diagnostics)
        program: Program to execute
        args: Positional arguments
        spawn_env: Environment configuration
        variables: Document variables exported as ZS_* entries

    Returns:
        Captured stdout, verbatim (trailing newline preserved)

    Raises:
        CommandNotFound: The program does not exist
        CommandFailed: The program could not be started or exited non-zero
    """
    LOG(f"exec {program} {' '.join(args)}".rstrip(), level=3)
    try:
        completed = subprocess.run(
            [str(program), *args],
            env=spawn_env.environ_build(variables),
            cwd=str(spawn_env.cwd),
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        raise CommandNotFound(name)
    except OSError as e:
        raise CommandFailed(name, args, None, reason=f"cannot execute {program}: {e.strerror or e}")

    if completed.stderr:
        logger.warning(f"{name}: {completed.stderr.rstrip()}")

    if completed.returncode != 0:
        raise CommandFailed(name, args, completed.returncode, completed.stderr)

    return completed.stdout
