"""
Format dispatcher: source file -> output artifact

Routes each source file by exact, case-sensitive extension:

    .md .mkd      markup: front matter, macros, markdown, layout  -> .html
    .html .xml    templated text: front matter, macros            -> same name
    .j2           template: front matter, jinja2, macros          -> .html
    .scss         stylesheet: libsass                             -> .css
    (other)       verbatim copy                                   -> same name

All output paths are relative to the output directory and mirror the
source tree.
"""

import shutil
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Optional

import markdown
import sass

from ..config import AppSettings, appsettings
from ..models.document import Document, VariableMap
from .errors import RenderError
from .expander import MacroExpander
from .log import LOG
from .metadata import MetadataExtractor
from .resolver import CommandResolver
from .templates import TemplateEngine


class FormatDispatcher:
    """
    Builds one source file into the output tree

    Responsibilities:
    - Choose a converter by extension
    - Run the extract -> expand -> convert -> layout pipeline
    - Write the artifact (creating parent directories)
    """

    def __init__(
        self,
        root: Path = Path("."),
        settings: Optional[AppSettings] = None,
        resolver: Optional[CommandResolver] = None,
        globals_: Optional[VariableMap] = None,
    ) -> None:
        """
        Args:
            root: Site root; source paths are relative to it
            settings: Configuration
            resolver: Command resolver shared with the scheduler
            globals_: Process-wide variables seeding every document
        """
        self.root = Path(root)
        self.settings = settings or appsettings
        self.resolver = resolver or CommandResolver(self.root, self.settings)
        self.templates = self.resolver.templates
        self.globals = dict(globals_ or {})
        self.extractor = MetadataExtractor(self.root, self.settings)
        self.expander = MacroExpander(self.resolver, self.settings)
        self.output_dir = self.root / self.settings.output_dir
        self.plugin_dir = self.root / self.settings.plugin_dir

        self.handlers: Dict[str, Callable[[Path], bytes]] = {}
        for ext in self.settings.markup_extensions:
            self.handlers[ext] = self.markup_build
        for ext in self.settings.html_extensions:
            self.handlers[ext] = self.html_build
        for ext in self.settings.template_extensions:
            self.handlers[ext] = self.template_build
        for ext in self.settings.style_extensions:
            self.handlers[ext] = self.style_build

    def handler_get(self, source: Path) -> Callable[[Path], bytes]:
        """Converter for a source path (copy when the extension is unknown)"""
        return self.handlers.get(Path(source).suffix, self.raw_copy)

    def build(self, source: Path) -> bytes:
        """
        Build a source file into the output tree

        Args:
            source: Source path relative to the site root

        Returns:
            Bytes written to the output file

        Raises:
            OSError: Source unreadable or output unwritable
            ParseError: Malformed front matter or unterminated macro
            CommandFailed: A macro command exited non-zero
            RenderError: Markdown, template or stylesheet conversion failed
        """
        source = Path(source)
        handler = self.handler_get(source)
        LOG(f"{handler.__name__.split('_')[0]}: {source.as_posix()}", level=1)
        return handler(source)

    def output_write(self, output: str, data: bytes) -> bytes:
        """Write an artifact under the site root, creating parent directories"""
        target = self.root / output
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        LOG(f"wrote {output} ({len(data)} bytes)", level=2)
        return data

    def output_path(self, source: Path, suffix: Optional[str] = None) -> str:
        """Output path for a source file, optionally with a new extension"""
        posix = PurePosixPath(source.as_posix())
        if suffix is not None:
            posix = posix.with_suffix(suffix)
        return str(PurePosixPath(self.settings.output_dir) / posix)

    def markup_build(self, source: Path) -> bytes:
        """
        Build a markup document wrapped in its layout

        The body is macro-expanded, converted to HTML and stored in the
        "content" variable; the layout from the plugin directory is then
        rendered with those variables.
        """
        doc = self.extractor.document_load(source, self.globals)
        doc.expanded = self.expander.expand(doc.body, doc.vars, path=str(source))
        doc.content = self.markdown_convert(doc.expanded, str(source))
        doc.vars["content"] = doc.content

        html = self.layout_render(doc)
        return self.output_write(doc.output, html.encode("utf-8"))

    def markdown_convert(self, text: str, path: str) -> str:
        """Convert markup to an HTML fragment"""
        try:
            return markdown.markdown(
                text,
                extensions=self.settings.markdown_extensions,
                extension_configs={
                    "codehilite": {
                        "noclasses": True,
                        "pygments_style": self.settings.pygments_style,
                    },
                },
            )
        except (ImportError, ValueError, AttributeError) as e:
            raise RenderError(f"{path}: markdown conversion failed: {e}") from e

    def layout_render(self, doc: Document) -> str:
        """
        Render a document's layout

        Template-language layouts are rendered by jinja2 and then expanded;
        any other layout is expanded directly.

        Raises:
            OSError: The layout file does not exist
            RenderError: The layout is not valid UTF-8 or fails to render
        """
        layout = self.plugin_dir / doc.layout
        try:
            text = layout.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise RenderError(f"layout {doc.layout} is not valid UTF-8: {e}") from e
        if layout.suffix in self.settings.template_extensions:
            text = self.templates.render(text, doc.vars, name=doc.layout)
        return self.expander.expand(text, doc.vars, path=doc.layout)

    def html_build(self, source: Path) -> bytes:
        """Build templated HTML/XML: macros expanded in place"""
        doc = self.extractor.document_load(source, self.globals, url_suffix=source.suffix)
        doc.expanded = self.expander.expand(doc.body, doc.vars, path=str(source))
        return self.output_write(doc.output, doc.expanded.encode("utf-8"))

    def template_build(self, source: Path) -> bytes:
        """Build a template-language page, then expand command macros"""
        doc = self.extractor.document_load(source, self.globals)
        rendered = self.templates.render(doc.body, doc.vars, name=str(source))
        doc.expanded = self.expander.expand(rendered, doc.vars, path=str(source))
        return self.output_write(doc.output, doc.expanded.encode("utf-8"))

    def style_build(self, source: Path) -> bytes:
        """Compile a stylesheet to CSS"""
        try:
            css = sass.compile(
                filename=str(self.root / source),
                output_style=self.settings.sass_output_style,
            )
        except sass.CompileError as e:
            raise RenderError(f"{source}: {e}") from e
        return self.output_write(self.output_path(source, ".css"), css.encode("utf-8"))

    def raw_copy(self, source: Path) -> bytes:
        """Copy a file byte for byte"""
        output = self.output_path(source)
        target = self.root / output
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.root / source, target)
        LOG(f"copied {output}", level=2)
        return target.read_bytes()
