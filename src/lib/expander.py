"""
Macro expander for {{ name args... }} syntax

Scans text once, left to right, replacing each macro with either:

1. the value of a variable, when the macro is a single bare name that is a
   key of the document's VariableMap ({{ title }}), or
2. the captured output of a command resolved by the CommandResolver
   ({{ greet world }}, {{ header }}, {{ date +%Y }}).

Substituted text is never rescanned: a variable whose value contains
"{{ ... }}" is emitted literally. There is no escape for the delimiters.

Example:
    >>> expander = MacroExpander(resolver)
    >>> expander.expand("a {{x}} b", {"x": "bar"})
    'a bar b'
"""

from typing import List, Optional, Protocol

from ..config import AppSettings, appsettings
from ..models.document import MacroInvocation, VariableMap
from .errors import CommandNotFound, UnterminatedMacro
from .log import LOG, logger


class CommandResolving(Protocol):
    """Anything that can turn a command name into captured output"""

    def resolve(self, name: str, args: List[str], variables: VariableMap) -> str:
        ...


class MacroExpander:
    """
    Single-pass macro expander

    Handles:
    - Variable references (no subprocess)
    - Command macros delegated to a resolver
    - Best-effort policy for unknown commands (logged, expands to nothing)
    - Unterminated macros (ParseError, no partial output)
    """

    def __init__(
        self,
        resolver: Optional[CommandResolving] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        """
        Args:
            resolver: Command resolver used for non-variable macros. With no
                      resolver every command macro is treated as not found.
            settings: Configuration (delimiters, strict mode)
        """
        self.resolver = resolver
        self.settings = settings or appsettings
        self.open = self.settings.macro_open
        self.close = self.settings.macro_close

    def expand(self, text: str, variables: VariableMap, path: Optional[str] = None) -> str:
        """
        Expand every macro in text

        Args:
            text: Text to scan
            variables: Document variables (read only)
            path: Source path for error messages

        Returns:
            Text with macros replaced

        Raises:
            UnterminatedMacro: An opening delimiter has no closing delimiter
            CommandFailed: A command ran and exited non-zero
            RenderError: A partial template failed to render
        """
        result: List[str] = []
        position = 0

        while True:
            start = text.find(self.open, position)
            if start == -1:
                result.append(text[position:])
                break

            result.append(text[position:start])

            inner_start = start + len(self.open)
            end = text.find(self.close, inner_start)
            if end == -1:
                raise UnterminatedMacro(start, text[start:start + 40], path)

            invocation = MacroInvocation.invocation_parse(text[inner_start:end], start)
            if invocation is None:
                LOG(f"{path or '<text>'}: empty macro at offset {start}", level=2)
            else:
                result.append(self.invocation_expand(invocation, variables, path))

            position = end + len(self.close)

        return ''.join(result)

    def invocation_expand(
        self, invocation: MacroInvocation, variables: VariableMap, path: Optional[str] = None
    ) -> str:
        """
        Expand one parsed macro

        Args:
            invocation: Parsed macro
            variables: Document variables
            path: Source path for diagnostics

        Returns:
            Replacement text (empty when the command does not exist)
        """
        if invocation.variable_is(variables):
            return variables[invocation.name]

        try:
            if self.resolver is None:
                raise CommandNotFound(invocation.name)
            return self.resolver.resolve(invocation.name, invocation.args, variables)
        except CommandNotFound as e:
            if self.settings.strict_mode:
                raise
            logger.warning(f"{path or '<text>'}: {e}")
            return ""
