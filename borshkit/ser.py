"""Encoding of Python values into the Borsh binary format.

Values follow the conventions described in :mod:`borshkit.schema`. Output goes
either to a ``bytearray`` (which grows as needed) or to any object with a
``write`` method, such as a file, an ``io.BytesIO`` or a
:class:`~borshkit.errors.FixedBufferWriter`.
"""

from __future__ import annotations

import functools
import ipaddress
import math
import operator
import struct
from collections.abc import Mapping
from typing import Any, Iterable, Tuple

from .errors import BorshError, ErrorKind, write_all
from .schema import (
    U16,
    ArrayType,
    BoolType,
    BorshType,
    EnumType,
    FloatType,
    HashMapType,
    HashSetType,
    IntegerType,
    Ipv4AddrType,
    Ipv6AddrType,
    NonZeroType,
    OptionType,
    ResultType,
    SocketAddrType,
    SocketAddrV4Type,
    SocketAddrV6Type,
    StringType,
    StructType,
    TupleType,
    UnitType,
    VecType,
)

_U32_MAX = 2**32 - 1
_NAN_MESSAGE = "For portability reasons we do not allow to serialize NaNs."
_INVALID_ZERO_VALUE = "Expected a non-zero value"
_BYTES_LIKE = (bytes, bytearray, memoryview)


def _write_length(length: int, out: bytearray) -> None:
    if length > _U32_MAX:
        raise BorshError(ErrorKind.INVALID_INPUT)
    out.extend(length.to_bytes(4, "little"))


def _is_u8(type_: BorshType) -> bool:
    return isinstance(type_, IntegerType) and type_.bits == 8 and not type_.signed


def _as_items(value: Any) -> Any:
    if isinstance(value, (list, tuple) + _BYTES_LIKE):
        return value
    return list(value)


def _encode_items(elements: BorshType, items: Any, out: bytearray) -> None:
    if _is_u8(elements) and isinstance(items, _BYTES_LIKE):
        out.extend(items)
        return
    for item in items:
        _encode(elements, item, out)


def _split_pair(value: Any, what: str) -> Tuple[Any, Any]:
    try:
        first, second = value
    except (TypeError, ValueError):
        raise BorshError(
            ErrorKind.INVALID_INPUT, f"Malformed {what} value: {value!r}"
        ) from None
    return first, second


@functools.singledispatch
def _encode(type_: Any, value: Any, out: bytearray) -> None:
    # The unit type takes up no bytes at all.
    if isinstance(type_, UnitType):
        return
    raise TypeError(f"Cannot serialize values of {type_!r}")


@_encode.register(IntegerType)
def _encode_integer(type_: IntegerType, value: Any, out: bytearray) -> None:
    number = operator.index(value)
    if not type_.min_value <= number <= type_.max_value:
        raise BorshError(
            ErrorKind.INVALID_INPUT,
            f"{number} does not fit in {type_.declaration()}",
        )
    out.extend(number.to_bytes(type_.size, "little", signed=type_.signed))


@_encode.register(NonZeroType)
def _encode_nonzero(type_: NonZeroType, value: Any, out: bytearray) -> None:
    if operator.index(value) == 0:
        raise BorshError(ErrorKind.INVALID_INPUT, _INVALID_ZERO_VALUE)
    _encode_integer(type_.inner, value, out)


@_encode.register(FloatType)
def _encode_float(type_: FloatType, value: Any, out: bytearray) -> None:
    number = float(value)
    if math.isnan(number):
        raise ValueError(_NAN_MESSAGE)
    out.extend(struct.pack("<f" if type_.bits == 32 else "<d", number))


@_encode.register(BoolType)
def _encode_bool(type_: BoolType, value: Any, out: bytearray) -> None:
    out.append(1 if value else 0)


@_encode.register(StringType)
def _encode_string(type_: StringType, value: Any, out: bytearray) -> None:
    if not isinstance(value, str):
        raise TypeError(f"Expected a str, got {type(value).__name__}")
    data = value.encode("utf-8")
    _write_length(len(data), out)
    out.extend(data)


@_encode.register(OptionType)
def _encode_option(type_: OptionType, value: Any, out: bytearray) -> None:
    if value is None:
        out.append(0)
    else:
        out.append(1)
        _encode(type_.inner, value, out)


@_encode.register(ResultType)
def _encode_result(type_: ResultType, value: Any, out: bytearray) -> None:
    tag, payload = _split_pair(value, "Result")
    if tag == "Ok":
        out.append(1)
        _encode(type_.ok, payload, out)
    elif tag == "Err":
        out.append(0)
        _encode(type_.err, payload, out)
    else:
        raise BorshError(
            ErrorKind.INVALID_INPUT, f"Result tag must be 'Ok' or 'Err', got {tag!r}"
        )


@_encode.register(VecType)
def _encode_vec(type_: VecType, value: Any, out: bytearray) -> None:
    items = _as_items(value)
    _write_length(len(items), out)
    _encode_items(type_.elements, items, out)


@_encode.register(ArrayType)
def _encode_array(type_: ArrayType, value: Any, out: bytearray) -> None:
    items = _as_items(value)
    if len(items) != type_.length:
        raise BorshError(
            ErrorKind.INVALID_INPUT,
            f"Expected {type_.length} elements, got {len(items)}",
        )
    _encode_items(type_.elements, items, out)


@_encode.register(TupleType)
def _encode_tuple(type_: TupleType, value: Any, out: bytearray) -> None:
    items = tuple(value)
    if len(items) != len(type_.elements):
        raise BorshError(
            ErrorKind.INVALID_INPUT,
            f"Expected a tuple of {len(type_.elements)} elements, got {len(items)}",
        )
    for element_type, item in zip(type_.elements, items):
        _encode(element_type, item, out)


@_encode.register(HashMapType)
def _encode_hash_map(type_: HashMapType, value: Any, out: bytearray) -> None:
    pairs: Iterable[Any] = value.items() if isinstance(value, Mapping) else value
    entries = sorted(pairs, key=operator.itemgetter(0))
    _write_length(len(entries), out)
    for key, item in entries:
        _encode(type_.key, key, out)
        _encode(type_.value, item, out)


@_encode.register(HashSetType)
def _encode_hash_set(type_: HashSetType, value: Any, out: bytearray) -> None:
    items = sorted(value)
    _write_length(len(items), out)
    for item in items:
        _encode(type_.elements, item, out)


@_encode.register(Ipv4AddrType)
def _encode_ipv4(type_: Ipv4AddrType, value: Any, out: bytearray) -> None:
    out.extend(ipaddress.IPv4Address(value).packed)


@_encode.register(Ipv6AddrType)
def _encode_ipv6(type_: Ipv6AddrType, value: Any, out: bytearray) -> None:
    out.extend(ipaddress.IPv6Address(value).packed)


@_encode.register(SocketAddrV4Type)
def _encode_socket_v4(type_: SocketAddrV4Type, value: Any, out: bytearray) -> None:
    address, port = _split_pair(value, "socket address")
    out.extend(ipaddress.IPv4Address(address).packed)
    _encode_integer(U16, port, out)


@_encode.register(SocketAddrV6Type)
def _encode_socket_v6(type_: SocketAddrV6Type, value: Any, out: bytearray) -> None:
    address, port = _split_pair(value, "socket address")
    out.extend(ipaddress.IPv6Address(address).packed)
    _encode_integer(U16, port, out)


@_encode.register(SocketAddrType)
def _encode_socket(type_: SocketAddrType, value: Any, out: bytearray) -> None:
    address, port = _split_pair(value, "socket address")
    ip = ipaddress.ip_address(address)
    out.append(0 if ip.version == 4 else 1)
    out.extend(ip.packed)
    _encode_integer(U16, port, out)


def _field_value(value: Any, name: str) -> Any:
    try:
        if isinstance(value, Mapping):
            return value[name]
        return getattr(value, name)
    except (KeyError, AttributeError):
        raise BorshError(ErrorKind.INVALID_INPUT, f"Missing field {name!r}") from None


@_encode.register(StructType)
def _encode_struct(type_: StructType, value: Any, out: bytearray) -> None:
    if type_.style == "named":
        for name, field_type in type_.fields:
            _encode(field_type, _field_value(value, name), out)
    elif type_.style == "unnamed":
        items = tuple(value)
        if len(items) != len(type_.fields):
            raise BorshError(
                ErrorKind.INVALID_INPUT,
                f"Expected {len(type_.fields)} fields for {type_.declaration()}, "
                f"got {len(items)}",
            )
        for field_type, item in zip(type_.fields, items):
            _encode(field_type, item, out)


@_encode.register(EnumType)
def _encode_enum(type_: EnumType, value: Any, out: bytearray) -> None:
    if isinstance(value, str):
        variant, payload = value, None
    else:
        variant, payload = _split_pair(value, "enum")
    for index, (name, struct_type) in enumerate(type_.variants):
        if name == variant:
            out.append(index)
            _encode_struct(struct_type, payload, out)
            return
    raise BorshError(
        ErrorKind.INVALID_INPUT,
        f"Unknown variant {variant!r} of {type_.declaration()}",
    )


def serialize(type_: BorshType, value: Any, writer: Any) -> None:
    """Encode ``value`` as ``type_`` and write the bytes to ``writer``."""
    if isinstance(writer, bytearray):
        _encode(type_, value, writer)
        return
    buffer = bytearray()
    _encode(type_, value, buffer)
    write_all(writer, bytes(buffer))


def to_vec(type_: BorshType, value: Any) -> bytes:
    """Encode ``value`` as ``type_`` and return the bytes."""
    buffer = bytearray()
    _encode(type_, value, buffer)
    return bytes(buffer)


def to_writer(writer: Any, type_: BorshType, value: Any) -> None:
    """Encode ``value`` as ``type_`` directly into ``writer``."""
    serialize(type_, value, writer)