"""Split inputs into units small enough for one generateContent call."""

from typing import List, Sequence

from scribe.models import MediaPayload, MediaUnit, TextUnit

DEFAULT_GROUP_SIZE = 6
DEFAULT_MAX_CHARS = 7000
TRANSLATE_MAX_CHARS = 4500
NEWLINE_THRESHOLD = 0.6


def split_media(
    files: Sequence[MediaPayload], group_size: int = DEFAULT_GROUP_SIZE
) -> List[MediaUnit]:
    if group_size < 1:
        raise ValueError("group_size must be at least 1")
    return [
        MediaUnit(index=index, payloads=list(files[start : start + group_size]))
        for index, start in enumerate(range(0, len(files), group_size))
    ]


def split_text(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> List[TextUnit]:
    """Cut ``text`` into spans of at most ``max_chars`` characters.

    A span ends at the last newline inside its window when that newline lies at
    least 60% of the way in; the newline then opens the next span. Otherwise
    the span is cut at exactly ``max_chars``. Joining the spans gives back
    ``text`` unchanged.
    """
    if max_chars < 1:
        raise ValueError("max_chars must be at least 1")

    units: List[TextUnit] = []
    pos = 0
    length = len(text)
    while pos < length:
        end = pos + max_chars
        if end < length:
            newline = text.rfind("\n", pos, end + 1)
            if newline != -1 and newline - pos >= max_chars * NEWLINE_THRESHOLD:
                end = newline
        else:
            end = length
        units.append(TextUnit(index=len(units), text=text[pos:end]))
        pos = end
    return units
