"""Template dialects."""

from __future__ import annotations

from enum import Enum


class Flavor(Enum):
    """A grammar variant, selected when a template is parsed.

    The flavors differ in the include tag: Liquid takes a quoted snippet
    name read from ``snippets/<name>.liquid``, Jekyll takes a bare file name
    read from ``_includes/<file>`` followed by ``key=value`` parameters.
    """

    LIQUID = "liquid"
    JEKYLL = "jekyll"

    @property
    def snippets_folder(self) -> str:
        return "_includes" if self is Flavor.JEKYLL else "snippets"

    @property
    def extension(self) -> str:
        return "" if self is Flavor.JEKYLL else ".liquid"

    @classmethod
    def from_name(cls, name: str) -> Flavor:
        try:
            return cls(name.lower())
        except ValueError:
            choices = ", ".join(f.value for f in cls)
            raise ValueError(f"unknown flavor '{name}' (expected one of: {choices})") from None
