"""
Metadata extraction for source documents

Splits a document into a front matter header and a body, and merges the
header with built-in defaults and process-wide globals:

    defaults  <  globals  <  front matter

Two header formats are supported (see AppSettings.header_format):

colon (default) - "key: value" lines ended by the first blank line:

    title: Hello, world!
    keywords: foo, bar

    Body starts here.

yaml - a YAML mapping ended by a separator line (optionally also opened by one):

    ---
    title: Hello, world!
    tags: [foo, bar]
    ---
    Body starts here.
"""

import re
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional, Tuple

import yaml
from frontmatter.default_handlers import YAMLHandler

from ..config import AppSettings, appsettings
from ..models.document import Document, VariableMap
from .errors import ParseError
from .log import LOG

HEADER_KEY = re.compile(r'^\w[\w .-]*$')


def split2(s: str, delim: str) -> Tuple[str, str]:
    """
    Split a string in exactly two parts at the first delimiter

    If no delimiter is found the second part is empty.

    Example:
        >>> split2("a:b:c", ":")
        ('a', 'b:c')
        >>> split2("a", ":")
        ('a', '')
    """
    head, _, tail = s.partition(delim)
    return head, tail


def colonHeader_parse(header: str) -> Optional[VariableMap]:
    """
    Parse "key: value" header lines

    Args:
        header: Text before the first blank line

    Returns:
        Parsed variables, or None if any non-blank line is not a
        "key: value" line (the block is then ordinary body text)
    """
    variables: VariableMap = {}
    for line in header.split("\n"):
        if not line.strip():
            continue
        if ":" not in line:
            return None
        key, value = split2(line, ":")
        key = key.strip()
        if not HEADER_KEY.match(key):
            return None
        variables[key.lower()] = value.strip()
    return variables


class SeparatorHandler(YAMLHandler):
    """python-frontmatter YAML handler fenced by a configurable separator line"""

    def __init__(self, separator: str = "---") -> None:
        self.FM_BOUNDARY = re.compile(
            r"^" + re.escape(separator) + r"[^\S\n]*$", re.MULTILINE
        )
        self.START_DELIMITER = separator
        self.END_DELIMITER = separator


def yamlValue_stringify(key: str, value: Any, path: str) -> str:
    """Flatten a YAML scalar or list into a variable string"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(yamlValue_stringify(key, v, path) for v in value)
    if isinstance(value, dict):
        raise ParseError(f"front matter key '{key}' must not be a mapping", path)
    return str(value).strip()


def yamlHeader_parse(header: str, path: str) -> VariableMap:
    """
    Parse a YAML front matter block into a flat VariableMap

    Raises:
        ParseError: Invalid YAML, a non-mapping document, or nested mappings
    """
    try:
        data = yaml.safe_load(header)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid front matter: {e}", path) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError("front matter must be a mapping", path)
    return {
        str(key).strip().lower(): yamlValue_stringify(str(key), value, path)
        for key, value in data.items()
    }


class MetadataExtractor:
    """
    Extracts per-document variables and body text

    Responsibilities:
    - Compute default variables (file, url, output, layout, date)
    - Overlay globals
    - Locate and parse the front matter header
    """

    def __init__(self, root: Path = Path("."), settings: Optional[AppSettings] = None) -> None:
        """
        Args:
            root: Site root; source paths are relative to it
            settings: Configuration (defaults to the appsettings singleton)
        """
        self.root = Path(root)
        self.settings = settings or appsettings
        self.handler = SeparatorHandler(self.settings.header_separator)

    def defaults_compute(self, source: Path, url_suffix: str = ".html") -> VariableMap:
        """
        Built-in default variables for a source path

        Args:
            source: Source path relative to the site root
            url_suffix: Extension of the published file

        Returns:
            VariableMap with file, url, output, layout and (if the file can
            be stat'ed) date

        Example:
            For "blog/post.md":
            {"file": "blog/post.md", "url": "blog/post.html",
             "output": ".pub/blog/post.html", "layout": "layout.html", ...}
        """
        posix = PurePosixPath(source.as_posix())
        url = str(posix.with_suffix(url_suffix)) if posix.suffix else str(posix) + url_suffix
        if url.startswith("./"):
            url = url[2:]

        plugin_dir = self.root / self.settings.plugin_dir
        if (plugin_dir / self.settings.template_layout).exists():
            layout = self.settings.template_layout
        else:
            layout = self.settings.default_layout

        variables: VariableMap = {
            "file": str(posix),
            "url": url,
            "output": str(PurePosixPath(self.settings.output_dir) / url),
            "layout": layout,
        }

        try:
            mtime = (self.root / source).stat().st_mtime
            variables["date"] = datetime.fromtimestamp(mtime).strftime(self.settings.date_format)
        except OSError:
            pass

        return variables

    def header_split(self, text: str, path: str = "") -> Tuple[VariableMap, str]:
        """
        Separate front matter from body

        Args:
            text: Whole file contents
            path: Source path for error messages

        Returns:
            (header variables, body). Without a separator the header is
            empty and the body is the whole text.

        Raises:
            ParseError: Malformed YAML front matter
        """
        if self.settings.header_format == "yaml":
            return self.yamlHeader_split(text, path)

        if "\n\n" not in text:
            return {}, text
        header, body = split2(text, "\n\n")
        variables = colonHeader_parse(header)
        if variables is None:
            LOG(f"{path}: no front matter", level=3)
            return {}, text
        return variables, body

    def yamlHeader_split(self, text: str, path: str) -> Tuple[VariableMap, str]:
        """
        Split a YAML block closed by the separator line

        A fenced block ("---" ... "---") is split by python-frontmatter;
        an unfenced one ends at the first separator line. The separator may
        be the last line of the file.
        """
        if self.handler.detect(text):
            try:
                header, body = self.handler.split(text)
            except ValueError:
                return {}, text
        else:
            parts = self.handler.FM_BOUNDARY.split(text, 1)
            if len(parts) < 2:
                return {}, text
            header, body = parts

        # the separator line's own newline
        if body.startswith("\n"):
            body = body[1:]
        return yamlHeader_parse(header, path), body

    def extract(
        self,
        source: Path,
        globals_: Optional[VariableMap] = None,
        url_suffix: str = ".html",
    ) -> Tuple[VariableMap, str]:
        """
        Read a source file and return its merged variables and body

        Args:
            source: Source path relative to the site root
            globals_: Process-wide variables (copied, never mutated)
            url_suffix: Extension of the published file

        Returns:
            (variables, body)

        Raises:
            OSError: The file cannot be read
            ParseError: Malformed front matter
        """
        source = Path(source)
        try:
            text = (self.root / source).read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"not valid UTF-8: {e}", str(source)) from e

        variables = self.defaults_compute(source, url_suffix)
        variables.update(globals_ or {})

        header, body = self.header_split(text, str(source))
        variables.update(header)

        if variables.get("url", "").startswith("./"):
            variables["url"] = variables["url"][2:]

        LOG(f"{source}: {len(header)} header variables", level=3)
        return variables, body

    def document_load(
        self,
        source: Path,
        globals_: Optional[VariableMap] = None,
        url_suffix: str = ".html",
    ) -> Document:
        """Extract a source file into a fresh Document"""
        variables, body = self.extract(source, globals_, url_suffix)
        return Document(source=Path(source), vars=variables, body=body)
