"""
Document and variable models

Type-safe structures passed between the metadata extractor, the macro
expander and the format dispatcher.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


# Lower-cased keys to string values. Always copied per document.
VariableMap = Dict[str, str]


@dataclass
class Document:
    """
    One source file being built

    Constructed fresh for every changed file on every pass and discarded
    once its output has been written.

    Attributes:
        source: Source path relative to the site root
        vars: Merged variables (defaults < globals < front matter)
        body: Body text with the front matter removed
        expanded: Body after macro expansion (None until expanded)
        content: Converted fragment embedded by a layout (markup documents)

    Example:
        For "blog/post.md" with header "title: Hi":
        Document(
            source=Path("blog/post.md"),
            vars={"title": "Hi", "url": "blog/post.html", ...},
            body="...",
        )
    """
    source: Path
    vars: VariableMap
    body: str
    expanded: Optional[str] = None
    content: Optional[str] = None

    @property
    def url(self) -> str:
        return self.vars.get("url", "")

    @property
    def output(self) -> str:
        return self.vars.get("output", "")

    @property
    def layout(self) -> str:
        return self.vars.get("layout", "")


@dataclass
class MacroInvocation:
    """
    A parsed {{ name arg1 arg2 ... }} token

    Attributes:
        name: Command or variable name (first whitespace-separated word)
        args: Remaining words, in source order
        position: Offset of the opening delimiter in the scanned text

    Example:
        "{{ echo hello world }}" ->
        MacroInvocation(name="echo", args=["hello", "world"])
    """
    name: str
    args: List[str] = field(default_factory=list)
    position: int = 0

    @classmethod
    def invocation_parse(cls, inner: str, position: int = 0) -> Optional["MacroInvocation"]:
        """
        Parse the text between macro delimiters

        Returns:
            MacroInvocation, or None if the macro is empty
        """
        words = inner.split()
        if not words:
            return None
        return cls(name=words[0], args=words[1:], position=position)

    def variable_is(self, variables: VariableMap) -> bool:
        """A bare name matching a known variable is a variable reference"""
        return not self.args and self.name in variables
