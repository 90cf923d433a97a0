"""
zs - Static site builder with executable macros

Builds a mirrored static site from markdown, HTML and template sources,
expanding {{ macros }} into variables or the output of plugin commands.
"""

__version__ = "0.3.0"

from .lib import (
    MetadataExtractor,
    MacroExpander,
    CommandResolver,
    FormatDispatcher,
    BuildScheduler,
    LOG,
    state_connectToLogger,
)

__all__ = [
    "MetadataExtractor",
    "MacroExpander",
    "CommandResolver",
    "FormatDispatcher",
    "BuildScheduler",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
