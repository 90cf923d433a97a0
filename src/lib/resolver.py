"""
Command resolver for macro commands

Resolution order for {{ name args... }}:

1. A partial template in the plugin directory (name + partial extension)
   is rendered in-process against the document variables.
2. An executable in the plugin directory (name, or name + any extension)
   is spawned.
3. An executable found on PATH is spawned.

Plugin directory entries always shadow PATH. The plugin directory is
scanned once per pass (plugins_scan) into a lookup table; PATH lookups are
memoised in the same table until the next scan.
"""

import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Set

from ..config import AppSettings, appsettings
from ..models.document import VariableMap
from ..models.plugins import ExternalExecutable, InProcessPartial, Resolvable
from .errors import CommandNotFound, RenderError
from .expander import MacroExpander
from .log import LOG
from .spawn import SpawnEnvironment, process_run
from .templates import TemplateEngine


class CommandResolver:
    """
    Resolves macro command names to partials or executables

    Responsibilities:
    - Scan the plugin directory into a Resolvable table
    - Render partials in-process (guarding against self-inclusion)
    - Spawn executables with the ZS_* environment protocol
    - Run pre/post hooks
    """

    def __init__(
        self,
        root: Path = Path("."),
        settings: Optional[AppSettings] = None,
        spawn_env: Optional[SpawnEnvironment] = None,
        templates: Optional[TemplateEngine] = None,
    ) -> None:
        """
        Args:
            root: Site root (plugin directory and child cwd are relative to it)
            settings: Configuration
            spawn_env: Child environment (defaults to a host snapshot)
            templates: Template engine for templated partials
        """
        self.root = Path(root)
        self.settings = settings or appsettings
        self.plugin_dir = self.root / self.settings.plugin_dir
        self.spawn_env = spawn_env or SpawnEnvironment.fromHost(
            tool_path=self.settings.tool_path,
            output_dir=self.settings.output_dir,
            cwd=self.root,
        )
        self.templates = templates or TemplateEngine(
            [self.plugin_dir, self.root], self.settings
        )
        self.table: Dict[str, Resolvable] = {}
        self.path_cache: Dict[str, Optional[Resolvable]] = {}
        self.partials_active: Set[str] = set()
        self.plugins_scan()

    def plugins_scan(self) -> Dict[str, Resolvable]:
        """
        Rebuild the lookup table from the plugin directory listing

        Partials take precedence over executables of the same name; among
        executables an exact file name beats "name minus extension".

        Returns:
            The new name -> Resolvable table
        """
        table: Dict[str, Resolvable] = {}
        exact: Dict[str, Resolvable] = {}

        try:
            entries = sorted(os.scandir(self.plugin_dir), key=lambda e: e.name)
        except FileNotFoundError:
            entries = []
        except OSError as e:
            LOG(f"Cannot list plugin directory {self.plugin_dir}: {e}", level=1)
            entries = []

        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                if not entry.is_file():
                    continue
            except OSError:
                continue

            path = Path(entry.path).absolute()
            stem = Path(entry.name).stem

            if self.settings.extension_isPartial(entry.name):
                templated = any(entry.name.endswith(ext) for ext in self.settings.template_extensions)
                table[stem] = InProcessPartial(name=stem, path=path, templated=templated)
            elif os.access(path, os.X_OK):
                executable = ExternalExecutable(name=entry.name, path=path, private=True)
                exact[entry.name] = executable
                table.setdefault(stem, executable)

        # Exact names win over stems, but never over partials
        for name, executable in exact.items():
            if not isinstance(table.get(name), InProcessPartial):
                table[name] = executable

        self.table = table
        self.path_cache = {}
        LOG(f"Plugin table: {', '.join(sorted(table)) or '(empty)'}", level=3)
        return table

    def lookup(self, name: str) -> Optional[Resolvable]:
        """
        Find the Resolvable for a command name

        Args:
            name: Command name from a macro

        Returns:
            Resolvable, or None when nothing matches
        """
        if name in self.table:
            return self.table[name]

        if name not in self.path_cache:
            found = shutil.which(name, path=self.spawn_env.search_path)
            self.path_cache[name] = (
                ExternalExecutable(name=name, path=Path(found), private=False) if found else None
            )
        return self.path_cache[name]

    def resolve(self, name: str, args: List[str], variables: VariableMap) -> str:
        """
        Run a macro command and return its output

        Args:
            name: Command name
            args: Positional arguments
            variables: Document variables

        Returns:
            Rendered partial text or captured stdout

        Raises:
            CommandNotFound: No partial or executable matches
            CommandFailed: The executable exited non-zero or could not start
            RenderError: The partial failed to render
        """
        target = self.lookup(name)
        if target is None:
            raise CommandNotFound(name)

        LOG(f"{name} -> {target.kind.value} {target.path}", level=3)

        if isinstance(target, InProcessPartial):
            return self.partial_render(target, variables)
        return process_run(name, target.path, args, self.spawn_env, variables)

    def partial_render(self, partial: InProcessPartial, variables: VariableMap) -> str:
        """
        Render a partial template against document variables

        Template-language partials are rendered by jinja2 first; the result
        (or the raw text) then goes through the macro expander once.

        Raises:
            RenderError: Template error, unreadable file, or self-inclusion
        """
        if partial.name in self.partials_active:
            raise RenderError(f"partial '{partial.name}' includes itself")

        self.partials_active.add(partial.name)
        try:
            try:
                text = partial.path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise RenderError(f"cannot read partial {partial.path}: {e}") from e
            if partial.templated:
                text = self.templates.render(text, variables, name=partial.path.name)
            expander = MacroExpander(self, self.settings)
            return expander.expand(text, variables, path=partial.path.name)
        finally:
            self.partials_active.discard(partial.name)

    def hook_run(self, name: str, variables: Optional[VariableMap] = None) -> bool:
        """
        Run a pre/post hook if the plugin directory provides one

        Hooks are looked up in the plugin directory only, never on PATH.
        Hook output is discarded.

        Args:
            name: Hook name ("pre" or "post")
            variables: Variables exported to the hook

        Returns:
            True if a hook ran

        Raises:
            CommandFailed: The hook exited non-zero
        """
        target = self.table.get(name)
        if not isinstance(target, ExternalExecutable):
            return False
        LOG(f"hook: {name}", level=2)
        process_run(name, target.path, [], self.spawn_env, variables)
        return True
