"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional CLI pipeline, the
pipeline() helper for composing transformation stages, and the in-memory
BuildState carried by the scheduler between passes.
"""

from enum import Enum
from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, List, Dict, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the CLI pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the run progresses.

    Pipeline stages and their state additions:
        - Initial: rootdir, verbosity, command, args
        - env_check: settings, globals, envOK
        - command_run: result, exitCode
        - results_report: (no additions, terminal stage)

    Attributes:
        rootdir: Site root (source tree) directory
        verbosity: Logging verbosity level (1-3)
        command: Sub-command name (build, watch, var, or a plugin name)
        args: Remaining positional arguments for the sub-command
        envOK: Environment validation passed
        settings: AppSettings for the site (environment plus the root .env)
        globals: ZS_* variables collected from the host environment
        result: Command output (text for var/plugin, PassReport for build)
        exitCode: Process exit status
    """

    # CLI arguments
    rootdir: Path = field(default=Path("."))
    verbosity: int = field(default=1)
    command: str = field(default="build")
    args: List[str] = field(default_factory=list)

    # Pipeline state
    envOK: bool = field(default=False)
    settings: Optional[Any] = field(default=None)
    globals: Dict[str, str] = field(default_factory=dict)
    result: Optional[Any] = field(default=None)
    exitCode: int = field(default=0)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace.

        Args:
            options: Parsed CLI arguments (rootdir, verbosity, command, args)

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}
        if "rootdir" in filtered_options:
            filtered_options["rootdir"] = Path(filtered_options["rootdir"])

        return cls(**filtered_options)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Args:
        initial_state: Starting ProgramState
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final ProgramState after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            command_run,
            results_report
        )

    This is equivalent to:
        results_report(command_run(env_check(initial_state)))
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)


class SchedulerPhase(Enum):
    """Lifecycle of the build scheduler"""
    IDLE = "idle"
    PASS_RUNNING = "pass_running"
    SLEEPING = "sleeping"


@dataclass
class BuildState:
    """
    Scheduler state carried between passes (memory only)

    Attributes:
        last_pass: Wall-clock time captured at the start of the previous
                   completed pass; epoch at startup so the first pass sees
                   every file as changed
        dirty: True once the pre-hook fired in the current pass
        phase: Current scheduler phase
        passes: Number of completed passes
    """
    last_pass: float = 0.0
    dirty: bool = False
    phase: SchedulerPhase = SchedulerPhase.IDLE
    passes: int = 0


@dataclass
class PassReport:
    """
    Summary of one scheduler pass

    Attributes:
        started: Clock value captured before the walk
        changed: Source files newer than the previous pass
        built: Files successfully dispatched
        failed: Files whose build raised (logged, not fatal)
        walk_errors: Tree entries skipped because they could not be read
        hooks: Hook names that ran, in order ("pre", "post")
        abandoned: True when the pass could not start (e.g. output dir)
    """
    started: float = 0.0
    changed: List[str] = field(default_factory=list)
    built: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    walk_errors: List[str] = field(default_factory=list)
    hooks: List[str] = field(default_factory=list)
    abandoned: bool = False
