"""
Models package for zs

Contains data structures and type definitions for the build pipeline.
"""

from .state import ProgramState, pipeline, BuildState, PassReport, SchedulerPhase
from .document import Document, MacroInvocation, VariableMap
from .plugins import (
    InProcessPartial,
    ExternalExecutable,
    Resolvable,
    PluginKind,
    HOOK_PRE,
    HOOK_POST,
)

__all__ = [
    "ProgramState",
    "pipeline",
    "BuildState",
    "PassReport",
    "SchedulerPhase",
    "Document",
    "MacroInvocation",
    "VariableMap",
    "InProcessPartial",
    "ExternalExecutable",
    "Resolvable",
    "PluginKind",
    "HOOK_PRE",
    "HOOK_POST",
]
