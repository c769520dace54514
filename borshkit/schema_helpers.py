"""Encoding and decoding of values prefixed with their own schema."""

from __future__ import annotations

from typing import Any

from .de import BytesLike, try_from_slice
from .errors import BorshError, ErrorKind
from .schema import BorshSchemaContainer, BorshType, TupleType, container_type
from .ser import to_vec

ERROR_SCHEMA_MISMATCH = "Borsh schema does not match"


def try_to_vec_with_schema(type_: BorshType, value: Any) -> bytes:
    """Encode ``value`` as ``type_``, prefixed with the encoded schema of ``type_``."""
    schema = type_.schema_container()
    return to_vec(container_type(), schema.to_value()) + to_vec(type_, value)


def try_from_slice_with_schema(type_: BorshType, data: BytesLike) -> Any:
    """Decode a schema-prefixed value of ``type_`` that must take up all of ``data``.

    The embedded schema must equal the schema of ``type_``; otherwise an
    ``INVALID_DATA`` error is raised.
    """
    schema_value, value = try_from_slice(TupleType((container_type(), type_)), data)
    if BorshSchemaContainer.from_value(schema_value) != type_.schema_container():
        raise BorshError(ErrorKind.INVALID_DATA, ERROR_SCHEMA_MISMATCH)
    return value