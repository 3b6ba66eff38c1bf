from __future__ import annotations

from dataclasses import dataclass

from .config import SUBST_CHAR
from .names import NameEntry


@dataclass
class SubstitutionBuffer:
    """Worker-owned scratch space for one resolved template."""

    capacity: int
    value: str = ""

    @classmethod
    def for_template(cls, template: str | None, max_name_length: int) -> "SubstitutionBuffer":
        return cls(capacity=len(template or "") + max_name_length)

    def store(self, value: str) -> str:
        if len(value) > self.capacity:
            raise ValueError(
                f"resolved template of length {len(value)} exceeds buffer capacity {self.capacity}"
            )
        self.value = value
        return value


def substitute(
    template: str,
    entry: NameEntry,
    buffer: SubstitutionBuffer | None = None,
    placeholder: str = SUBST_CHAR,
) -> str:
    """Replace the first ``placeholder`` in ``template`` with ``entry``.

    Templates without a placeholder are returned as-is and the buffer is left
    untouched.
    """
    head, found, tail = template.partition(placeholder)
    if not found:
        return template

    resolved = f"{head}{entry.name}{tail}"
    if buffer is None:
        return resolved
    return buffer.store(resolved)


__all__ = ["SubstitutionBuffer", "substitute"]
