"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from promissory import Promise


@dataclass
class Recorder:
    """Records every outcome observed through ``then()``, in arrival order."""

    events: list[tuple[str, Any]] = field(default_factory=list)

    def watch(self, promise: Promise[Any], label: str = "") -> Promise[Any]:
        def on_fulfilled(value: Any) -> None:
            self.events.append((f"{label}fulfilled", value))

        def on_rejected(reason: Any) -> None:
            self.events.append((f"{label}rejected", reason))

        return promise.then(on_fulfilled, on_rejected)

    @property
    def outcomes(self) -> list[Any]:
        return [payload for _, payload in self.events]


class Boom(Exception):
    """Distinct exception type for rejection reasons."""
