"""
Plugin descriptor models

Entries discovered in the private plugin directory are modelled as a closed
set of Resolvable variants. The resolver scans the directory once per pass
into a name -> Resolvable table.
"""

from enum import Enum
from dataclasses import dataclass
from pathlib import Path
from typing import Union


class PluginKind(Enum):
    """
    How a resolved command is executed

    Used for logging and for the resolver's dispatch.
    """
    PARTIAL = "partial"          # .zs/header.html, .zs/nav.j2
    EXECUTABLE = "executable"    # .zs/greet, /usr/bin/date


@dataclass(frozen=True)
class InProcessPartial:
    """
    A partial template rendered in-process, never spawned

    Attributes:
        name: Command name (file name minus extension)
        path: Absolute path of the partial
        templated: True for template-language partials (rendered by jinja2
                   before macro expansion), False for plain macro text
    """
    name: str
    path: Path
    templated: bool = False

    @property
    def kind(self) -> PluginKind:
        return PluginKind.PARTIAL


@dataclass(frozen=True)
class ExternalExecutable:
    """
    A program run as a subprocess

    Attributes:
        name: Command name as written in the macro
        path: Resolved program path
        private: True when found in the plugin directory, False for PATH
    """
    name: str
    path: Path
    private: bool = True

    @property
    def kind(self) -> PluginKind:
        return PluginKind.EXECUTABLE


Resolvable = Union[InProcessPartial, ExternalExecutable]

# Hook scripts looked up in the plugin directory
HOOK_PRE = "pre"
HOOK_POST = "post"
