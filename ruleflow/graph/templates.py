"""
Template rendering and context transformations for action nodes.

The engine depends only on :class:`TemplateRenderer`; the Jinja2-backed
:class:`JinjaTemplateRenderer` is the default. Every template sees the whole
context store as its variables, plus two accessors:

    {{ get_template("fetch_user", "subject") }}   rendered template of an earlier node
    {{ get_result("fetch_user").id }}             executor result of an earlier node
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from jinja2 import Environment, StrictUndefined, Template, Undefined

from ruleflow.graph.node import Transformation
from ruleflow.runtime.context_store import MISSING, ContextStore

logger = logging.getLogger(__name__)


@runtime_checkable
class TemplateRenderer(Protocol):
    """Renders one template string against a variable scope."""

    async def render(self, template: str, scope: Mapping[str, Any]) -> str: ...


def _finalize(value: Any) -> Any:
    # null and undefined values render as empty strings
    if value is None or value is MISSING:
        return ""
    return value


class JinjaTemplateRenderer:
    """
    Async Jinja2 renderer.

    Args:
        strict_undefined: Raise ``jinja2.UndefinedError`` on unknown variables
            instead of rendering them as empty strings.
    """

    def __init__(self, strict_undefined: bool = False):
        self.strict_undefined = strict_undefined
        self._env = Environment(
            enable_async=True,
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined if strict_undefined else Undefined,
            finalize=_finalize,
        )
        self._cache: dict[str, Template] = {}

    def compile(self, template: str) -> Template:
        compiled = self._cache.get(template)
        if compiled is None:
            compiled = self._env.from_string(template)
            self._cache[template] = compiled
        return compiled

    async def render(self, template: str, scope: Mapping[str, Any]) -> str:
        return await self.compile(template).render_async(dict(scope))


def build_scope(store: ContextStore) -> dict[str, Any]:
    """Variables visible to templates: the store contents plus accessors."""
    return {
        **store.data,
        "get_template": store.get_template,
        "get_result": store.get_result,
    }


async def render_templates(
    templates: Mapping[str, str] | None,
    store: ContextStore,
    renderer: TemplateRenderer,
) -> dict[str, str]:
    """Render each named template against the store, in declaration order."""
    rendered: dict[str, str] = {}
    scope = build_scope(store)
    for key, template in (templates or {}).items():
        rendered[key] = await renderer.render(template, scope)
    return rendered


async def apply_transformations(
    transformations: Sequence[Transformation] | None,
    store: ContextStore,
    renderer: TemplateRenderer,
) -> None:
    """Render and write each transformation in order.

    The scope is rebuilt for every entry so later transformations see the
    writes of earlier ones.
    """
    for transformation in transformations or ():
        value = await renderer.render(transformation.value, build_scope(store))
        store.assign(transformation.field, value)
        logger.debug(f"Transformed '{transformation.field}'")
