from string import Template
from typing import Dict, Mapping, Optional

from lfpweather.core.errors import QueryRenderError
from lfpweather.core.logger import get_logger
from lfpweather.queries.descriptors import QueryDescriptor, QueryKind
from lfpweather.queries.templates import ALL_TEMPLATES

logger = get_logger("queries.renderer")


class QueryRenderer:
    """Renders descriptors into ClickHouse SQL.

    Templates are compiled once at construction and only read afterwards, so a
    single renderer is shared by every request.
    """

    def __init__(self, templates: Optional[Mapping[QueryKind, str]] = None):
        source = ALL_TEMPLATES if templates is None else templates
        self._templates: Dict[QueryKind, Template] = {
            kind: Template(text) for kind, text in source.items()
        }

    def render(self, descriptor: QueryDescriptor) -> str:
        template = self._templates.get(descriptor.kind)
        if template is None:
            raise QueryRenderError(f"no query template for {descriptor.kind.value}")
        try:
            query = template.substitute(descriptor.template_params())
        except (KeyError, ValueError) as e:
            raise QueryRenderError(
                f"failed to execute {descriptor.kind.value} query template: {e}"
            ) from e
        logger.debug("query_rendered", extra={"query": query})
        return query
