from __future__ import annotations

from typing import FrozenSet, Optional

from ..lib.detect import Variant
from ..pipeline import RunContext

GNOME_ONLY: FrozenSet[Variant] = frozenset({Variant.GNOME})


class BaseStep:
    """Defaults for steps; subclasses set class attributes and override action/verify.

    ``variants`` of None means the step applies to every desktop.
    ``default_enabled`` False makes the step opt-in via ``steps.enable``.
    """

    step_id: str = ""
    description: str = ""
    critical: bool = False
    retryable: bool = False
    max_attempts: Optional[int] = None
    variants: Optional[FrozenSet[Variant]] = None
    default_enabled: bool = True

    def guard(self, variant: Variant) -> bool:
        return self.variants is None or variant in self.variants

    def action(self, ctx: RunContext) -> None:
        raise NotImplementedError

    def verify(self, ctx: RunContext) -> bool:
        return True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.step_id}>"
