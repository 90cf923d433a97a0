"""
Incremental build scheduler

One pass walks the source tree in lexical order and dispatches every file
modified after the start of the previous pass:

    Idle -> PassRunning -> (Sleeping -> PassRunning ...)   watch mode
    Idle -> PassRunning -> Idle                            build mode

The pass timestamp is captured before the walk, so a file touched while a
pass is running is picked up by the next pass. The pre hook runs before the
first changed file of a pass, the post hook after the last one; passes with
no changes run neither.

Hidden entries (name starting with ".") are skipped, which also keeps the
plugin and output directories out of the walk.
"""

import os
import threading
import time
from pathlib import Path
from typing import Callable, Iterator, Optional, Tuple

from ..config import AppSettings, appsettings
from ..models.document import VariableMap
from ..models.plugins import HOOK_POST, HOOK_PRE
from ..models.state import BuildState, PassReport, SchedulerPhase
from .dispatcher import FormatDispatcher
from .errors import ZsError
from .log import LOG, logger
from .resolver import CommandResolver


class BuildScheduler:
    """
    Runs build passes once or on a polling loop

    Responsibilities:
    - Walk the tree, mirror directories, detect changed files by mtime
    - Fire pre/post hooks around the changed files of a pass
    - Isolate per-file and per-entry failures from the rest of the pass
    """

    def __init__(
        self,
        root: Path = Path("."),
        settings: Optional[AppSettings] = None,
        globals_: Optional[VariableMap] = None,
        resolver: Optional[CommandResolver] = None,
        dispatcher: Optional[FormatDispatcher] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            root: Site root
            settings: Configuration
            globals_: Process-wide variables
            resolver: Command resolver (rescanned at every pass start)
            dispatcher: Format dispatcher
            clock: Wall-clock source for pass timestamps
        """
        self.root = Path(root)
        self.settings = settings or appsettings
        self.globals = dict(globals_ or {})
        self.resolver = resolver or CommandResolver(self.root, self.settings)
        self.dispatcher = dispatcher or FormatDispatcher(
            self.root, self.settings, self.resolver, self.globals
        )
        self.clock = clock
        self.state = BuildState()
        self.output_dir = self.root / self.settings.output_dir
        self.excluded = {
            self.output_dir.resolve(),
            (self.root / self.settings.plugin_dir).resolve(),
        }

    def tree_walk(self, report: PassReport, relative: Path = Path(".")) -> Iterator[Tuple[Path, os.DirEntry]]:
        """
        Yield (relative path, entry) pairs in lexical order, depth first

        Directories are yielded before their contents. Hidden entries and
        the output and plugin directories are skipped. Entries that cannot
        be listed are recorded in the report and skipped.
        """
        directory = self.root / relative
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.error(f"cannot list {relative.as_posix()}: {e}")
            report.walk_errors.append(relative.as_posix())
            return

        for entry in entries:
            if entry.name.startswith(".") or self.entry_isExcluded(entry):
                continue
            path = relative / entry.name
            yield path, entry
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False
            if is_dir:
                yield from self.tree_walk(report, path)

    def entry_isExcluded(self, entry: os.DirEntry) -> bool:
        """True for the output and plugin directories, wherever they are"""
        try:
            if not entry.is_dir(follow_symlinks=False):
                return False
        except OSError:
            return False
        return Path(entry.path).resolve() in self.excluded

    def pass_run(self) -> PassReport:
        """
        Run one build pass

        Returns:
            PassReport describing what changed, what was built and which
            hooks ran
        """
        started = self.clock()
        report = PassReport(started=started)
        self.state.phase = SchedulerPhase.PASS_RUNNING
        LOG(f"Pass {self.state.passes + 1} starting", level=3)

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"cannot create output directory {self.output_dir}: {e}")
            report.abandoned = True
            self.pass_finish(started)
            return report

        self.resolver.plugins_scan()

        for path, entry in self.tree_walk(report):
            self.entry_process(path, entry, report)

        if self.state.dirty:
            self.hook_fire(HOOK_POST, report)
            self.state.dirty = False

        self.pass_finish(started)
        if report.changed:
            LOG(
                f"Pass done: {len(report.built)} built, {len(report.failed)} failed",
                level=1,
            )
        return report

    def pass_finish(self, started: float) -> None:
        self.state.last_pass = started
        self.state.passes += 1
        self.state.phase = SchedulerPhase.IDLE

    def entry_process(self, path: Path, entry: os.DirEntry, report: PassReport) -> None:
        """Mirror a directory, or build a file if it changed since the last pass"""
        name = path.as_posix()
        try:
            if entry.is_dir(follow_symlinks=False):
                (self.output_dir / path).mkdir(parents=True, exist_ok=True)
                return
            mtime = entry.stat().st_mtime
        except OSError as e:
            logger.error(f"{name}: {e}")
            report.walk_errors.append(name)
            return

        if mtime <= self.state.last_pass:
            return

        report.changed.append(name)
        if not self.state.dirty:
            self.hook_fire(HOOK_PRE, report)
            self.state.dirty = True

        try:
            self.dispatcher.build(path)
            report.built.append(name)
        except (OSError, ZsError) as e:
            logger.error(f"{name}: {e}")
            report.failed.append(name)

    def hook_fire(self, hook: str, report: PassReport) -> None:
        """Run a hook; its failure is logged and does not stop the pass"""
        try:
            if self.resolver.hook_run(hook, self.globals):
                report.hooks.append(hook)
        except ZsError as e:
            logger.error(f"{hook} hook: {e}")

    def run_once(self) -> PassReport:
        """Build mode: a single pass"""
        return self.pass_run()

    def watch(self, stop: Optional[threading.Event] = None) -> None:
        """
        Watch mode: run passes until the stop event is set

        The stop event is checked at every sleep boundary; a pass in
        progress always runs to completion.

        Args:
            stop: Cancellation token (a fresh, never-set Event by default)
        """
        stop = stop or threading.Event()
        LOG(f"Watching {self.root} every {self.settings.poll_interval}s", level=1)
        while not stop.is_set():
            self.pass_run()
            self.state.phase = SchedulerPhase.SLEEPING
            if stop.wait(self.settings.poll_interval):
                break
        self.state.phase = SchedulerPhase.IDLE
