#!/usr/bin/env python3
"""
zs - Static site builder with executable macros

Builds a static site from the current directory into .pub/, expanding
{{ macros }} in markdown, HTML and template sources. A macro is either a
document variable or a command: a partial template or executable in .zs/,
or any program on PATH.

Philosophy:
    - Plain files: every source file stays readable without the tool
    - Unix plugins: any executable is a macro; variables travel as ZS_* env
    - Incremental: only files modified since the last pass are rebuilt

Usage:
    zs build                      build once
    zs watch                      rebuild on change (polling)
    zs var <file> [keys...]       print a document's variables
    zs <plugin> [args...]         run a plugin from .zs/

Examples:
    # One-shot build of the site in the current directory
    zs build

    # Rebuild every second while editing, with verbose output
    zs -v watch

    # Inside a plugin: read another page's title
    $ZS var blog/post.md title
"""

import signal
import sys
import threading
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter, REMAINDER
from pathlib import Path
from typing import List, Optional

from .config import settings_load
from .lib import BuildScheduler, CommandResolver, MetadataExtractor, __version__, LOG, state_connectToLogger
from .lib.errors import CommandError, ZsError
from .lib.log import logger
from .lib.spawn import globals_collect
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
  ________
 |___  / __|
    / /\__ \
   / /__ _) |
  /_____|__/

  Static site builder with executable macros
"""

# Define CLI arguments
parser = ArgumentParser(
    prog="zs",
    description="zs - static site builder with executable macros",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--rootdir",
    default=".",
    type=str,
    help="Site root containing the sources, the plugin directory and the output directory",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")

parser.add_argument("command", type=str, help="build, watch, var, or a plugin name")

parser.add_argument("args", nargs=REMAINDER, help="Arguments for the command")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate the site root and collect global variables.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - settings: Site settings (ZSCONF_* plus the root .env)
            - globals: ZS_* variables from the environment
            - envOK: True if the root directory exists

    Exits:
        1 if the site root does not exist
    """
    state = inputstate.copy()

    if state.verbosity >= 3:
        LOG(DISPLAY_TITLE, level=3)

    if not state.rootdir.is_dir():
        print(f"Error: Site root not found: {state.rootdir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.settings = settings_load(state.rootdir)
    state.globals = globals_collect()
    LOG(f"Site root: {state.rootdir.resolve()}", level=2)
    LOG(f"Globals: {', '.join(sorted(state.globals)) or '(none)'}", level=3)

    state.envOK = True
    return state


def site_build(state: ProgramState) -> ProgramState:
    """Single build pass"""
    scheduler = BuildScheduler(state.rootdir, state.settings, state.globals)
    report = scheduler.run_once()
    state.result = report
    if report.abandoned or report.failed:
        state.exitCode = 1
    return state


def site_watch(state: ProgramState) -> ProgramState:
    """Poll and rebuild until interrupted (Ctrl-C or SIGTERM)"""
    scheduler = BuildScheduler(state.rootdir, state.settings, state.globals)
    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: stop.set())
    try:
        scheduler.watch(stop)
    except KeyboardInterrupt:
        stop.set()
        LOG("Stopped", level=1)
    return state


def variables_show(state: ProgramState) -> ProgramState:
    """
    Print a document's variables.

    zs var <file>            -> "key:value" per line, sorted by key
    zs var <file> <keys...>  -> one value per line

    Output is trimmed of surrounding whitespace.
    """
    if not state.args:
        print("Error: var: filename expected", file=sys.stderr)
        state.exitCode = 1
        return state

    extractor = MetadataExtractor(state.rootdir, state.settings)
    try:
        variables, _ = extractor.extract(Path(state.args[0]), state.globals)
    except (OSError, ZsError) as e:
        print(f"Error: var: {e}", file=sys.stderr)
        state.exitCode = 1
        return state

    if len(state.args) > 1:
        lines = [variables.get(key, "") for key in state.args[1:]]
    else:
        lines = [f"{key}:{value}" for key, value in sorted(variables.items())]
    state.result = "\n".join(lines).strip()
    return state


def plugin_run(state: ProgramState) -> ProgramState:
    """Run a plugin by name and pass its output through"""
    resolver = CommandResolver(state.rootdir, state.settings)
    try:
        state.result = resolver.resolve(state.command, state.args, state.globals)
    except CommandError as e:
        print(f"Error: {e}", file=sys.stderr)
        state.exitCode = 1
    except ZsError as e:
        logger.error(str(e))
        state.exitCode = 1
    return state


def command_run(inputstate: ProgramState) -> ProgramState:
    """
    Dispatch to the sub-command.

    Returns:
        ProgramState with added fields:
            - result: PassReport (build), text (var, plugin) or None (watch)
            - exitCode: 0 on success
    """
    state = inputstate.copy()
    LOG(f"Command: {state.command} {' '.join(state.args)}".rstrip(), level=2)

    if state.command == "build":
        return site_build(state)
    if state.command == "watch":
        return site_watch(state)
    if state.command == "var":
        return variables_show(state)
    return plugin_run(state)


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Write command output for the user.

    Text results go to stdout verbatim (plugins) or followed by a newline
    (var). Build reports are summarized through the logger.
    """
    state: ProgramState = inputstate.copy()

    if isinstance(state.result, str):
        if state.command == "var":
            print(state.result)
        else:
            sys.stdout.write(state.result)
            sys.stdout.flush()
    elif state.result is not None and state.command == "build":
        report = state.result
        LOG(f"Built {len(report.built)} of {len(report.changed)} changed files", level=2)
        for name in report.failed:
            LOG(f"  failed: {name}", level=2)
    return state


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point - parse arguments and run the command pipeline.

    Orchestrates:
        1. env_check: Validate the site root, collect globals
        2. command_run: build / watch / var / plugin
        3. results_report: Print output

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Process exit status
    """
    options: Namespace = parser.parse_args(argv)

    state: ProgramState = ProgramState.state_createFromNamespace(options)

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    final_state = pipeline(state, env_check, command_run, results_report)
    return final_state.exitCode


if __name__ == "__main__":
    sys.exit(main())
