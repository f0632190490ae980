"""Per-render evaluation state."""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from liqpy.errors import IterationsExceeded, RenderedSizeExceeded, RenderTimeout
from liqpy.flavor import Flavor
from liqpy.protection import ProtectionSettings


@dataclass
class TemplateContext:
    """State carried through evaluation of one node graph.

    ``variables`` is the outermost scope; assign and capture always write
    there. Loops and includes push inner scopes that shadow it for the
    duration of their body.
    """

    variables: dict[str, Any]
    protection: ProtectionSettings = field(default_factory=ProtectionSettings)
    flavor: Flavor = Flavor.LIQUID
    include_root: Path = field(default_factory=Path.cwd)
    deadline: float | None = None  # time.monotonic() value
    registers: dict[str, dict[str, Any]] = field(default_factory=dict)
    include_depth: int = 0
    max_include_depth: int = 16
    iterations: int = 0
    scopes: list[dict[str, Any]] = field(init=False)

    def __post_init__(self) -> None:
        self.scopes = [self.variables]

    @classmethod
    def start(
        cls,
        variables: dict[str, Any],
        protection: ProtectionSettings,
        flavor: Flavor,
        include_root: Path,
    ) -> TemplateContext:
        """Create a context whose deadline starts now."""
        deadline = None
        if protection.is_time_bounded:
            deadline = time.monotonic() + protection.max_evaluation_duration
        return cls(variables, protection, flavor, include_root, deadline)

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def resolve(self, name: str) -> Any:
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        return None

    def assign(self, name: str, value: Any) -> None:
        self.variables[name] = value

    @contextmanager
    def scope(self, bindings: Mapping[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        frame = dict(bindings or {})
        self.scopes.append(frame)
        try:
            yield frame
        finally:
            self.scopes.pop()

    def register(self, name: str) -> dict[str, Any]:
        """Per-render storage for stateful tags such as cycle and increment."""
        return self.registers.setdefault(name, {})

    # ------------------------------------------------------------------
    # Cooperative limits
    # ------------------------------------------------------------------

    def check_deadline(self) -> None:
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise RenderTimeout(self.protection.max_evaluation_duration)

    def tick(self) -> None:
        """Count one loop iteration against the iteration and time limits."""
        self.iterations += 1
        if self.iterations > self.protection.max_iterations:
            raise IterationsExceeded(self.protection.max_iterations)
        self.check_deadline()

    def check_rendered_size(self, size: int) -> None:
        if size > self.protection.max_rendered_size:
            raise RenderedSizeExceeded(size, self.protection.max_rendered_size)
