"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use ZSCONF_ prefix (e.g., ZSCONF_HEADER_FORMAT=yaml).

ZS_<NAME> variables are document globals (see lib.spawn.globals_collect),
not tool settings.

Settings can also be loaded from a .env file: the appsettings singleton
reads .env from the working directory, settings_load() reads the one in a
given site root.
"""

import shutil
import sys
from pathlib import Path
from typing import List, Literal, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def toolPath_default() -> str:
    """Path of the running zs executable, exported to plugins as $ZS"""
    return shutil.which("zs") or sys.argv[0]


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use ZSCONF_ prefix.

    Examples:
        ZSCONF_PLUGIN_DIR=.zs
        ZSCONF_OUTPUT_DIR=.pub
        ZSCONF_POLL_INTERVAL=0.5
        ZSCONF_HEADER_FORMAT=yaml
    """

    model_config = SettingsConfigDict(
        env_prefix="ZSCONF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Site layout
    plugin_dir: str = Field(
        default=".zs",
        description="Private plugin directory (executables, partials, pre/post hooks)",
    )

    output_dir: str = Field(
        default=".pub",
        description="Public output directory mirroring the source tree",
    )

    # Watch mode
    poll_interval: float = Field(
        default=1.0,
        description="Seconds to sleep between passes in watch mode",
    )

    # Front matter
    header_format: Literal["colon", "yaml"] = Field(
        default="colon",
        description="Front matter variant: 'key: value' lines ended by a blank line, or a YAML block ended by a separator line",
    )

    header_separator: str = Field(
        default="---",
        description="Separator line closing a YAML front matter block",
    )

    date_format: str = Field(
        default="%d-%m-%Y",
        description="strftime format of the default 'date' variable (file modification time)",
    )

    # Macros
    macro_open: str = Field(default="{{", description="Opening macro delimiter")
    macro_close: str = Field(default="}}", description="Closing macro delimiter")

    strict_mode: bool = Field(
        default=False,
        description="Strict mode: a macro naming an unknown command fails the document",
    )

    # Layouts
    default_layout: str = Field(
        default="layout.html",
        description="Layout used for markup documents that do not declare one",
    )

    template_layout: str = Field(
        default="layout.j2",
        description="Template-language layout preferred when present in the plugin directory",
    )

    # Format table (exact, case-sensitive suffix match)
    markup_extensions: Tuple[str, ...] = Field(default=(".md", ".mkd"))
    html_extensions: Tuple[str, ...] = Field(default=(".html", ".xml"))
    template_extensions: Tuple[str, ...] = Field(default=(".j2",))
    style_extensions: Tuple[str, ...] = Field(default=(".scss",))
    partial_extensions: Tuple[str, ...] = Field(
        default=(".html", ".j2"),
        description="Plugin directory entries rendered in-process instead of spawned",
    )

    # Template language; macro delimiters stay free for command macros
    template_variable_start: str = Field(default="${")
    template_variable_end: str = Field(default="}")

    # Markup conversion
    markdown_extensions: List[str] = Field(
        default_factory=lambda: ["extra", "codehilite"],
        description="Python-Markdown extensions applied to markup documents",
    )

    pygments_style: str = Field(
        default="default",
        description="Pygments style for highlighted code blocks (inlined, no stylesheet needed)",
    )

    # Style preprocessor
    sass_output_style: Literal["nested", "expanded", "compact", "compressed"] = Field(
        default="expanded",
    )

    # Subprocess protocol
    tool_path: str = Field(
        default_factory=toolPath_default,
        description="Value exported to plugins as $ZS",
    )

    def extension_isPartial(self, name: str) -> bool:
        """
        Check whether a plugin directory entry is a partial template.

        Args:
            name: File name inside the plugin directory

        Returns:
            True if the name ends with one of partial_extensions

        Example:
            >>> AppSettings().extension_isPartial('header.html')
            True
        """
        return any(name.endswith(ext) for ext in self.partial_extensions)


# Singleton instance - import this in your code
appsettings = AppSettings()


def settings_load(rootdir: Path) -> AppSettings:
    """
    Settings for a site: ZSCONF_* environment variables plus the site's .env

    Args:
        rootdir: Site root; a missing .env there is not an error

    Returns:
        A fresh AppSettings instance
    """
    return AppSettings(_env_file=Path(rootdir) / ".env")
