"""
Decoding of parsed JSON values and XML elements into caller-chosen types.

A target is either ``None`` (keep the parsed value), a class exposing a
``from_json`` / ``from_xml`` classmethod, a dataclass, a ``list[...]`` /
``dict[str, ...]`` / ``Optional[...]`` generic, or a scalar type.
Dataclass fields may rename their source key with
``field(metadata={"json": "key"})`` or ``field(metadata={"xml": "tag"})``.
"""

from __future__ import annotations

import codecs
import dataclasses
import re
import types
from collections.abc import Callable
from typing import Any, Protocol, TypeVar, Union, get_args, get_origin, get_type_hints
from xml.etree.ElementTree import Element

from .errors import DecodeError

T = TypeVar("T")

XML_TEXT = "#text"

_XML_DECL = re.compile(rb"""^\s*<\?xml[^>]*?encoding\s*=\s*["']([A-Za-z][A-Za-z0-9._:-]*)["']""")
_TRUE = ("true", "1")
_FALSE = ("false", "0")


class ByteStream(Protocol):
    def read(self, size: int = -1) -> bytes: ...


CharsetReader = Callable[[str, ByteStream], ByteStream]


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def _unwrap_optional(tp: Any) -> tuple[Any, bool]:
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(tp) if a is not type(None)]
        optional = len(args) < len(get_args(tp))
        if len(args) == 1:
            return args[0], optional
        return Any, optional
    return tp, False


def _is_dataclass_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def _required(f: dataclasses.Field) -> bool:
    return f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING


# JSON


def decode_json_value(value: Any, target: Any = None) -> Any:
    """Convert a value produced by ``json.loads`` into ``target``."""
    if target is None or target is object or target is Any:
        return value
    target, optional = _unwrap_optional(target)
    if value is None:
        if optional or target is Any:
            return None
        raise DecodeError(f"expected {_type_name(target)}, got null")
    if target is Any:
        return value

    from_json = getattr(target, "from_json", None)
    if callable(from_json):
        return from_json(value)
    if _is_dataclass_type(target):
        return _json_dataclass(value, target)

    origin = get_origin(target) or target
    args = get_args(target)
    if origin is list:
        if not isinstance(value, list):
            raise DecodeError(f"expected array, got {type(value).__name__}")
        item = args[0] if args else Any
        return [decode_json_value(v, item) for v in value]
    if origin is dict:
        if not isinstance(value, dict):
            raise DecodeError(f"expected object, got {type(value).__name__}")
        item = args[1] if len(args) == 2 else Any
        return {k: decode_json_value(v, item) for k, v in value.items()}
    return _json_scalar(value, target)


def _json_dataclass(value: Any, target: type[T]) -> T:
    if not isinstance(value, dict):
        raise DecodeError(f"expected object for {target.__name__}, got {type(value).__name__}")
    hints = get_type_hints(target)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(target):
        if not f.init:
            continue
        key = f.metadata.get("json", f.name)
        if key in value:
            kwargs[f.name] = decode_json_value(value[key], hints.get(f.name, Any))
        elif _required(f):
            raise DecodeError(f"missing field {key!r} for {target.__name__}")
    return target(**kwargs)


def _json_scalar(value: Any, target: Any) -> Any:
    if target is bool:
        if isinstance(value, bool):
            return value
    elif target is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif target is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif target is str:
        if isinstance(value, str):
            return value
    else:
        raise DecodeError(f"unsupported decode target {_type_name(target)}")
    raise DecodeError(f"expected {target.__name__}, got {type(value).__name__}")


# XML


def decode_xml_element(element: Element, target: Any = None) -> Any:
    """Convert a parsed XML element into ``target``."""
    if target is None or target is Element:
        return element
    target, _ = _unwrap_optional(target)
    from_xml = getattr(target, "from_xml", None)
    if callable(from_xml):
        return from_xml(element)
    if _is_dataclass_type(target):
        return _xml_dataclass(element, target)
    return _convert_text(element.text or "", target)


def _xml_dataclass(element: Element, target: type[T]) -> T:
    hints = get_type_hints(target)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(target):
        if not f.init:
            continue
        name = f.metadata.get("xml", f.name)
        tp, _ = _unwrap_optional(hints.get(f.name, str))

        if name == XML_TEXT:
            kwargs[f.name] = _convert_text(element.text or "", tp)
        elif get_origin(tp) is list or tp is list:
            args = get_args(tp)
            item = args[0] if args else str
            kwargs[f.name] = [_xml_value(child, item) for child in element.findall(name)]
        elif name in element.attrib:
            kwargs[f.name] = _convert_text(element.attrib[name], tp)
        else:
            child = element.find(name)
            if child is not None:
                kwargs[f.name] = _xml_value(child, tp)
            elif _required(f):
                raise DecodeError(f"missing element or attribute {name!r} for {target.__name__}")
    return target(**kwargs)


def _xml_value(element: Element, tp: Any) -> Any:
    if tp is Element or _is_dataclass_type(tp) or callable(getattr(tp, "from_xml", None)):
        return decode_xml_element(element, tp)
    return _convert_text(element.text or "", tp)


def _convert_text(text: str, tp: Any) -> Any:
    if tp is str or tp is Any or tp is object:
        return text
    try:
        if tp is bool:
            lowered = text.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(f"invalid boolean {text!r}")
        if tp is int:
            return int(text.strip())
        if tp is float:
            return float(text.strip())
    except ValueError as exc:
        raise DecodeError(str(exc)) from exc
    raise DecodeError(f"unsupported decode target {_type_name(tp)}")


def declared_xml_encoding(prefix: bytes) -> str | None:
    """Encoding named by a byte-order mark or the XML declaration, if any."""
    if prefix.startswith(codecs.BOM_UTF8):
        return "utf-8"
    if prefix.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return "utf-16"
    match = _XML_DECL.match(prefix)
    if match:
        return match.group(1).decode("ascii").lower()
    return None


def needs_transcoding(charset: str) -> bool:
    try:
        return codecs.lookup(charset).name != "utf-8"
    except LookupError:
        return True


class _Transcoder:
    def __init__(self, charset: str, stream: ByteStream) -> None:
        self._decoder = codecs.getincrementaldecoder(charset)(errors="strict")
        self._stream = stream
        self._done = False

    def read(self, size: int = -1) -> bytes:
        while not self._done:
            data = self._stream.read(size)
            if not data:
                self._done = True
            text = self._decoder.decode(data, final=self._done)
            if text:
                return text.encode("utf-8")
        return b""


def transcoding_reader(charset: str, stream: ByteStream) -> ByteStream:
    """
    Charset reader backed by Python's codec registry. Raises ``LookupError``
    for charsets Python does not know.
    """
    return _Transcoder(charset, stream)
