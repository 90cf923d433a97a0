"""
Template-language rendering (jinja2)

Layouts, partials and source files ending in a template extension are
compiled with jinja2. Variable tags use ${ ... } so that {{ ... }} reaches
the macro expander untouched:

    <title>${ title }</title>
    {% if description %}<meta name="description" content="${ description }">{% endif %}
    {{ nav }}          <- zs macro, expanded after rendering
"""

from pathlib import Path
from typing import List, Optional

import jinja2

from ..config import AppSettings, appsettings
from ..models.document import VariableMap
from .errors import RenderError


class TemplateEngine:
    """
    Thin wrapper over a jinja2 Environment configured for zs sites

    Templates may {% include %} or {% extends %} files from the plugin
    directory and from the site root.
    """

    def __init__(self, search_paths: List[Path], settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or appsettings
        self.environment = jinja2.Environment(
            loader=jinja2.FileSystemLoader([str(p) for p in search_paths]),
            variable_start_string=self.settings.template_variable_start,
            variable_end_string=self.settings.template_variable_end,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render(self, source: str, variables: VariableMap, name: str = "<template>") -> str:
        """
        Compile and execute template text against a VariableMap

        Args:
            source: Template text
            variables: Values visible to the template (also as `vars`)
            name: Template name for error messages

        Returns:
            Rendered text

        Raises:
            RenderError: On template syntax or runtime errors
        """
        try:
            template = self.environment.from_string(source)
            return template.render({**variables, "vars": dict(variables)})
        except jinja2.TemplateError as e:
            raise RenderError(f"{name}: {e}") from e
        except Exception as e:
            # errors raised by expressions inside the template
            raise RenderError(f"{name}: {type(e).__name__}: {e}") from e
