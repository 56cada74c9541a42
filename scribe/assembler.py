import re
from typing import Iterable

FENCE_PATTERN = re.compile(r"`{3}[A-Za-z]*")
UNIT_SEPARATOR = "\n\n"


def strip_fences(text: str) -> str:
    return FENCE_PATTERN.sub("", text).strip()


def assemble(partials: Iterable[str]) -> str:
    """Join unit outputs in order, one blank line apart.

    Fences are stripped from each partial before joining so that a stray fence
    cannot span a unit boundary.
    """
    cleaned = (strip_fences(partial) for partial in partials)
    return UNIT_SEPARATOR.join(part for part in cleaned if part)
