from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping


def _sanitize_header(name: str, value: str) -> tuple[str, str]:
    """
    Sanitize header name and value to prevent HTTP header injection (CRLF injection).
    Strips CR, LF, and null bytes from both name and value.
    """
    clean_name = name.replace("\r", "").replace("\n", "").replace("\x00", "")
    clean_value = value.replace("\r", "").replace("\n", "").replace("\x00", "")
    return clean_name, clean_value


class Headers(Mapping[str, str]):
    """
    Read-only, case-insensitive view over response header pairs.

    Lookups ignore case and the last occurrence of a repeated header wins,
    while iteration yields names in the casing the server sent them.
    """

    def __init__(self, pairs: Iterable[tuple[str, str]] = ()) -> None:
        self._pairs: tuple[tuple[str, str], ...] = tuple(pairs)
        self._index: dict[str, tuple[str, str]] = {}
        for name, value in self._pairs:
            self._index[name.lower()] = (name, value)

    def __getitem__(self, name: str) -> str:
        return self._index[name.lower()][1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._index.values())

    def __len__(self) -> int:
        return len(self._index)

    def get_all(self, name: str) -> list[str]:
        key = name.lower()
        return [value for n, value in self._pairs if n.lower() == key]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._lowered() == other._lowered()
        if isinstance(other, Mapping):
            return self._lowered() == {str(k).lower(): v for k, v in other.items()}
        return NotImplemented

    def _lowered(self) -> dict[str, str]:
        return {key: value for key, (_, value) in self._index.items()}

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"


def canonicalize_headers(
    default_headers: Iterable[tuple[str, str]],
    user_headers: Mapping[str, str] | None,
) -> list[tuple[str, str]]:
    """
    Merge user headers over defaults. Names compare case-insensitively; a user
    header replaces the default in place, new ones are appended in insertion order.
    """
    merged: dict[str, tuple[str, str]] = {}
    for name, value in default_headers:
        name, value = _sanitize_header(name, value)
        merged[name.lower()] = (name, value)
    if user_headers:
        for name, value in user_headers.items():
            name, value = _sanitize_header(name, str(value))
            merged[name.lower()] = (name, value)
    return list(merged.values())
