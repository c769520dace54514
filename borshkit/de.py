"""Decoding of Borsh-encoded bytes into Python values.

Decoded values follow the conventions described in :mod:`borshkit.schema`.
Sequences of ``u8`` (``VecType(U8)`` and ``ArrayType(U8, n)``) decode to
``bytes``. Other vectors and arrays decode to lists, tuples to tuples,
maps to dicts and sets to sets. Map keys and set items that would not be
hashable, such as lists, are turned into tuples.
"""

from __future__ import annotations

import functools
import ipaddress
import math
import struct
from typing import Any, Union

from .errors import BorshError, ErrorKind
from .schema import (
    U16,
    U32,
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

ERROR_NOT_ALL_BYTES_READ = "Not all bytes read"
ERROR_UNEXPECTED_LENGTH_OF_INPUT = "Unexpected length of input"
ERROR_INVALID_ZERO_VALUE = "Expected a non-zero value"
_NAN_MESSAGE = "For portability reasons we do not allow to deserialize NaNs."

BytesLike = Union[bytes, bytearray, memoryview]


class Cursor:
    """A read position over a block of bytes."""

    def __init__(self, data: BytesLike) -> None:
        self._view = memoryview(bytes(data))
        self._position = 0

    def read(self, size: int) -> bytes:
        """Return the next ``size`` bytes and move past them."""
        if size > self.remaining():
            raise BorshError(ErrorKind.INVALID_INPUT, ERROR_UNEXPECTED_LENGTH_OF_INPUT)
        end = self._position + size
        chunk = bytes(self._view[self._position:end])
        self._position = end
        return chunk

    def read_byte(self) -> int:
        """Return the next byte as an integer."""
        return self.read(1)[0]

    def remaining(self) -> int:
        """Number of bytes not read yet."""
        return len(self._view) - self._position


def cautious(hint: int, element_size: int) -> int:
    """Bound a length hint so that it covers at most 4096 bytes, and at least one item."""
    return max(min(hint, 4096 // element_size), 1)


def _is_u8(type_: BorshType) -> bool:
    return isinstance(type_, IntegerType) and type_.bits == 8 and not type_.signed


def _is_zero_size(type_: BorshType) -> bool:
    if isinstance(type_, UnitType):
        return True
    if isinstance(type_, StructType):
        if type_.style == "named":
            return all(_is_zero_size(t) for _, t in type_.fields)
        return all(_is_zero_size(t) for t in type_.fields)
    if isinstance(type_, ArrayType):
        return type_.length == 0 or _is_zero_size(type_.elements)
    if isinstance(type_, TupleType):
        return all(_is_zero_size(t) for t in type_.elements)
    return False


def _freeze(value: Any) -> Any:
    """Turn a decoded value into something hashable."""
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, tuple):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, dict):
        return tuple((_freeze(k), _freeze(v)) for k, v in value.items())
    if isinstance(value, set):
        return frozenset(value)
    return value


def _utf8_error_message(error: UnicodeDecodeError) -> str:
    if error.reason == "unexpected end of data":
        return f"incomplete utf-8 byte sequence from index {error.start}"
    return (
        f"invalid utf-8 sequence of {error.end - error.start} bytes "
        f"from index {error.start}"
    )


@functools.singledispatch
def _decode(type_: Any, cursor: Cursor) -> Any:
    # The unit type reads no bytes and decodes to None.
    if isinstance(type_, UnitType):
        return None
    raise TypeError(f"Cannot deserialize values of {type_!r}")


@_decode.register(IntegerType)
def _decode_integer(type_: IntegerType, cursor: Cursor) -> int:
    return int.from_bytes(cursor.read(type_.size), "little", signed=type_.signed)


@_decode.register(NonZeroType)
def _decode_nonzero(type_: NonZeroType, cursor: Cursor) -> int:
    number = _decode_integer(type_.inner, cursor)
    if number == 0:
        raise BorshError(ErrorKind.INVALID_DATA, ERROR_INVALID_ZERO_VALUE)
    return number


@_decode.register(FloatType)
def _decode_float(type_: FloatType, cursor: Cursor) -> float:
    (number,) = struct.unpack("<f" if type_.bits == 32 else "<d", cursor.read(type_.size))
    if math.isnan(number):
        raise BorshError(ErrorKind.INVALID_INPUT, _NAN_MESSAGE)
    return number


@_decode.register(BoolType)
def _decode_bool(type_: BoolType, cursor: Cursor) -> bool:
    byte = cursor.read_byte()
    if byte == 0:
        return False
    if byte == 1:
        return True
    raise BorshError(ErrorKind.INVALID_INPUT, f"Invalid bool representation: {byte}")


@_decode.register(StringType)
def _decode_string(type_: StringType, cursor: Cursor) -> str:
    length = _decode_integer(U32, cursor)
    data = cursor.read(length)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as error:
        raise BorshError(ErrorKind.INVALID_DATA, _utf8_error_message(error)) from None


@_decode.register(OptionType)
def _decode_option(type_: OptionType, cursor: Cursor) -> Any:
    flag = cursor.read_byte()
    if flag == 0:
        return None
    if flag == 1:
        return _decode(type_.inner, cursor)
    raise BorshError(
        ErrorKind.INVALID_INPUT,
        f"Invalid Option representation: {flag}. The first byte must be 0 or 1",
    )


@_decode.register(ResultType)
def _decode_result(type_: ResultType, cursor: Cursor) -> Any:
    flag = cursor.read_byte()
    if flag == 0:
        return ("Err", _decode(type_.err, cursor))
    if flag == 1:
        return ("Ok", _decode(type_.ok, cursor))
    raise BorshError(
        ErrorKind.INVALID_INPUT,
        f"Invalid Result representation: {flag}. The first byte must be 0 or 1",
    )


@_decode.register(VecType)
def _decode_vec(type_: VecType, cursor: Cursor) -> Any:
    length = _decode_integer(U32, cursor)
    elements = type_.elements
    if _is_u8(elements):
        return cursor.read(length)
    if length == 0:
        return []
    if _is_zero_size(elements):
        return [_decode(elements, cursor)] * length
    return [_decode(elements, cursor) for _ in range(length)]


@_decode.register(ArrayType)
def _decode_array(type_: ArrayType, cursor: Cursor) -> Any:
    if _is_u8(type_.elements):
        return cursor.read(type_.length)
    return [_decode(type_.elements, cursor) for _ in range(type_.length)]


@_decode.register(TupleType)
def _decode_tuple(type_: TupleType, cursor: Cursor) -> tuple:
    return tuple(_decode(element, cursor) for element in type_.elements)


@_decode.register(HashMapType)
def _decode_hash_map(type_: HashMapType, cursor: Cursor) -> dict:
    length = _decode_integer(U32, cursor)
    result = {}
    for _ in range(length):
        key = _freeze(_decode(type_.key, cursor))
        result[key] = _decode(type_.value, cursor)
    return result


@_decode.register(HashSetType)
def _decode_hash_set(type_: HashSetType, cursor: Cursor) -> set:
    length = _decode_integer(U32, cursor)
    return {_freeze(_decode(type_.elements, cursor)) for _ in range(length)}


@_decode.register(Ipv4AddrType)
def _decode_ipv4(type_: Ipv4AddrType, cursor: Cursor) -> ipaddress.IPv4Address:
    return ipaddress.IPv4Address(cursor.read(4))


@_decode.register(Ipv6AddrType)
def _decode_ipv6(type_: Ipv6AddrType, cursor: Cursor) -> ipaddress.IPv6Address:
    return ipaddress.IPv6Address(cursor.read(16))


@_decode.register(SocketAddrV4Type)
def _decode_socket_v4(type_: SocketAddrV4Type, cursor: Cursor) -> tuple:
    address = ipaddress.IPv4Address(cursor.read(4))
    return (address, _decode_integer(U16, cursor))


@_decode.register(SocketAddrV6Type)
def _decode_socket_v6(type_: SocketAddrV6Type, cursor: Cursor) -> tuple:
    address = ipaddress.IPv6Address(cursor.read(16))
    return (address, _decode_integer(U16, cursor))


@_decode.register(SocketAddrType)
def _decode_socket(type_: SocketAddrType, cursor: Cursor) -> tuple:
    kind = cursor.read_byte()
    if kind == 0:
        return _decode_socket_v4(SocketAddrV4Type(), cursor)
    if kind == 1:
        return _decode_socket_v6(SocketAddrV6Type(), cursor)
    raise BorshError(ErrorKind.INVALID_INPUT, f"Invalid SocketAddr variant: {kind}")


@_decode.register(StructType)
def _decode_struct(type_: StructType, cursor: Cursor) -> Any:
    if type_.style == "named":
        values = {name: _decode(field_type, cursor) for name, field_type in type_.fields}
        values.update(type_.skipped)
        value = type_.factory(**values) if type_.factory else values
    elif type_.style == "unnamed":
        items = tuple(_decode(field_type, cursor) for field_type in type_.fields)
        value = type_.factory(*items) if type_.factory else items
    else:
        value = type_.factory() if type_.factory else None
    if type_.init is not None:
        replaced = type_.init(value)
        if replaced is not None:
            value = replaced
    return value


@_decode.register(EnumType)
def _decode_enum(type_: EnumType, cursor: Cursor) -> tuple:
    index = cursor.read_byte()
    if index >= len(type_.variants):
        raise BorshError(ErrorKind.INVALID_INPUT, f"Unexpected variant index: {index}")
    name, struct_type = type_.variants[index]
    return (name, _decode_struct(struct_type, cursor))


def deserialize(type_: BorshType, cursor: Union[Cursor, BytesLike]) -> Any:
    """Decode one value of ``type_`` from ``cursor``, moving it past the bytes read."""
    if not isinstance(cursor, Cursor):
        cursor = Cursor(cursor)
    return _decode(type_, cursor)


def try_from_slice(type_: BorshType, data: BytesLike) -> Any:
    """Decode a value of ``type_`` that must take up all of ``data``."""
    cursor = Cursor(data)
    value = _decode(type_, cursor)
    if cursor.remaining():
        raise BorshError(ErrorKind.INVALID_DATA, ERROR_NOT_ALL_BYTES_READ)
    return value