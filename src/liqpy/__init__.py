"""liqpy — Liquid templates with pluggable tags and filters and render protection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from liqpy.flavor import Flavor

if TYPE_CHECKING:
    from liqpy.protection import ProtectionSettings
    from liqpy.template import Template

__version__ = "0.1.0"

__all__ = ["Flavor", "parse", "render", "__version__"]


def parse(
    source: str,
    flavor: Flavor = Flavor.LIQUID,
    *,
    filename: str = "input.liquid",
    protection_settings: ProtectionSettings | None = None,
) -> Template:
    """Parse Liquid source text into a Template."""
    from liqpy.template import Template

    return Template.parse(source, flavor, filename=filename, protection_settings=protection_settings)


def render(source: str, *args: Any, **kwargs: Any) -> str:
    """Parse *source* with the Liquid flavor and render it once."""
    from liqpy.template import Template

    return Template.parse(source).render(*args, **kwargs)
