"""Template — parse once, render many times under protection limits."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from liqpy.ast import Document
from liqpy.binder import bind
from liqpy.builder import build
from liqpy.context import TemplateContext
from liqpy.debug import format_ast
from liqpy.filters import Filter, as_filter, default_filters
from liqpy.flavor import Flavor
from liqpy.nodes import BlockNode, LoopInterrupt
from liqpy.parser import parse
from liqpy.protection import ProtectionSettings, bound, check_size
from liqpy.registry import Registry
from liqpy.tags import Tag, as_tag, default_tags
from liqpy.values import to_liquid_string

logger = logging.getLogger(__name__)


class Template:
    """A parsed template bound to one flavor.

    The syntax tree never changes after parsing. The tag and filter registries
    and the protection settings may be changed between renders; every render
    builds a fresh node graph from the current registries, so a change is seen
    by the next render and never by one already in progress.
    """

    def __init__(
        self,
        document: Document,
        flavor: Flavor = Flavor.LIQUID,
        *,
        source: str = "",
        filename: str = "input.liquid",
        include_root: Path | None = None,
        protection_settings: ProtectionSettings | None = None,
    ) -> None:
        self.document = document
        self.flavor = flavor
        self.source = source
        self.source_size = len(source.encode("utf-8"))
        self.filename = filename
        self.include_root = include_root if include_root is not None else Path.cwd()
        self.protection_settings = protection_settings or ProtectionSettings()
        self.tags: Registry[Tag] = default_tags()
        self.filters: Registry[Filter] = default_filters()

    @classmethod
    def parse(
        cls,
        source: str,
        flavor: Flavor = Flavor.LIQUID,
        *,
        filename: str = "input.liquid",
        include_root: Path | None = None,
        protection_settings: ProtectionSettings | None = None,
    ) -> Template:
        """Parse *source*; with *protection_settings*, oversized source is rejected before parsing."""
        if protection_settings is not None:
            check_size(len(source.encode("utf-8")), protection_settings.max_source_size_bytes)
        document = parse(source, filename, flavor)
        logger.debug("parsed %s (%s flavor, %d top-level nodes)", filename, flavor.value, len(document.children))
        return cls(
            document,
            flavor,
            source=source,
            filename=filename,
            include_root=include_root,
            protection_settings=protection_settings,
        )

    @classmethod
    def parse_file(
        cls,
        path: str | Path,
        flavor: Flavor = Flavor.LIQUID,
        *,
        protection_settings: ProtectionSettings | None = None,
    ) -> Template:
        """Parse a template file; includes resolve relative to its directory."""
        path = Path(path)
        source = path.read_text(encoding="utf-8")
        return cls.parse(
            source,
            flavor,
            filename=str(path),
            include_root=path.parent,
            protection_settings=protection_settings,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def with_tag(self, name: str, handler: Tag | Callable[..., Any]) -> Template:
        self.tags.register(name, as_tag(handler))
        return self

    def with_filter(self, name: str, handler: Filter | Callable[..., Any]) -> Template:
        self.filters.register(name, as_filter(handler))
        return self

    def with_protection_settings(self, settings: ProtectionSettings) -> Template:
        if not isinstance(settings, ProtectionSettings):
            raise TypeError(f"expected ProtectionSettings, got {type(settings).__name__}")
        self.protection_settings = settings
        return self

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def build(self) -> BlockNode:
        """Build a node graph from the syntax tree and the current registries."""
        return build(self.document, self.tags, self.filters, self.flavor, self.source)

    def render(self, *args: Any, **kwargs: Any) -> str:
        """Render with variables given as JSON text, a mapping, keyword arguments or a key/value list.

        Either the whole output is returned or an exception is raised; there
        is no partial output.
        """
        settings = self.protection_settings
        check_size(self.source_size, settings.max_source_size_bytes)
        graph = self.build()
        variables = bind(*args, **kwargs)
        context = TemplateContext.start(variables, settings, self.flavor, self.include_root)

        def evaluate() -> Any:
            try:
                return graph.evaluate(context)
            except LoopInterrupt as interrupt:
                # break/continue outside a loop stops the render
                return interrupt.output

        result = bound(evaluate, settings.max_evaluation_duration)
        logger.debug("rendered %s in %d loop iterations", self.filename, context.iterations)
        if result is None:
            return ""
        return to_liquid_string(result)

    def to_string_ast(self) -> str:
        return format_ast(self.document)

    def __repr__(self) -> str:
        return f"Template({self.filename!r}, flavor={self.flavor.value!r})"
