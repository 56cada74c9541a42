"""Ordered credential pool."""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from scribe.config import parse_key_list


def key_prefix(key: str) -> str:
    if len(key) <= 11:
        return key
    return f"{key[:8]}...{key[-3:]}"


class KeyPool:
    """Holds API keys in priority order.

    Keys are tried first to last. The pool is only ever appended to; it is
    never reordered and duplicates are kept.
    """

    def __init__(self, keys: Optional[Iterable[str]] = None):
        self._keys: List[str] = []
        if keys is not None:
            self.append(keys)

    @classmethod
    def from_text(cls, raw: str) -> "KeyPool":
        return cls(parse_key_list(raw))

    def load(self) -> Tuple[str, ...]:
        return tuple(self._keys)

    def append(self, keys: Iterable[str]) -> int:
        if isinstance(keys, str):
            keys = parse_key_list(keys)
        added = 0
        for key in keys:
            key = key.strip()
            if not key:
                continue
            self._keys.append(key)
            added += 1
        return added

    def copy(self) -> "KeyPool":
        return KeyPool(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        return iter(self.load())

    def get_status(self) -> Dict[str, object]:
        return {
            "total_keys": len(self._keys),
            "keys": [
                {"position": position, "key_prefix": key_prefix(key)}
                for position, key in enumerate(self._keys, start=1)
            ],
        }
