"""
zs - Static site builder with executable macros

Markdown, HTML and templates in, a mirrored static site out; plugins in the
.zs directory are callable from any document as {{ macros }}.
"""

__version__ = "0.3.0"

from .metadata import MetadataExtractor
from .expander import MacroExpander
from .resolver import CommandResolver
from .dispatcher import FormatDispatcher
from .scheduler import BuildScheduler
from .log import LOG, state_connectToLogger

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
