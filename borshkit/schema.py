"""Self-describing schemas for Borsh-encoded types.

Borsh is not a self-descriptive format, so each type can describe itself with
a *declaration* (its name, e.g. ``HashMap<u64, string>``) and a *definition*
(its structure). A :class:`BorshSchemaContainer` holds every definition needed
to work with a single type.

Type descriptors are :class:`BorshType` instances. They also fix how Python
values map onto the wire format:

* integers, floats, booleans and strings map to ``int``, ``float``, ``bool``
  and ``str``; the unit type maps to ``None``;
* ``OptionType`` values are ``None`` or the inner value;
* ``ResultType`` values are ``("Ok", value)`` or ``("Err", value)``;
* ``VecType`` and ``ArrayType`` values are sequences, ``TupleType`` values
  tuples, ``HashMapType`` values mappings and ``HashSetType`` values sets;
* named ``StructType`` values are mappings (or objects with matching
  attributes), unnamed ones are sequences and empty ones are ``None``;
* ``EnumType`` values are ``(variant_name, payload)`` pairs whose payload
  follows the struct convention of that variant.
"""

from __future__ import annotations

import abc
import functools
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from .errors import BorshError, ErrorKind

Declaration = str

_REDEFINITION_MESSAGE = (
    "Redefining type schema for the same type name. "
    "Types with the same names are not supported."
)
_MAX_ENUM_VARIANTS = 256
_U32_MAX = 2**32 - 1


# --------------------------------------------------------------------------
# Definitions
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class ArrayDefinition:
    """A fixed-size array of same-type elements."""

    length: int
    elements: Declaration


@dataclass(frozen=True)
class SequenceDefinition:
    """A run-time sized sequence of same-type elements."""

    elements: Declaration


@dataclass(frozen=True)
class TupleDefinition:
    """A fixed-size tuple of elements of different types."""

    elements: Tuple[Declaration, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))


@dataclass(frozen=True)
class EnumDefinition:
    """A tagged union: variant names with the declarations of their structures."""

    variants: Tuple[Tuple[str, Declaration], ...]

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "variants", tuple((name, decl) for name, decl in self.variants)
        )


@dataclass(frozen=True)
class NamedFields:
    """Struct fields with names."""

    fields: Tuple[Tuple[str, Declaration], ...]

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "fields", tuple((name, decl) for name, decl in self.fields)
        )


@dataclass(frozen=True)
class UnnamedFields:
    """Struct fields without names, laid out like a tuple."""

    fields: Tuple[Declaration, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))


@dataclass(frozen=True)
class EmptyFields:
    """A struct without fields."""


Fields = Union[NamedFields, UnnamedFields, EmptyFields]


@dataclass(frozen=True)
class StructDefinition:
    """A structure, laid out like a tuple of its fields."""

    fields: Fields


Definition = Union[
    ArrayDefinition, SequenceDefinition, TupleDefinition, EnumDefinition, StructDefinition
]
Definitions = Dict[Declaration, Definition]


def add_definition(
    declaration: Declaration, definition: Definition, definitions: Definitions
) -> bool:
    """Add one definition to ``definitions``.

    Returns ``True`` when it was added and ``False`` when an equal definition
    was already present. A different definition under the same name raises
    ``ValueError``.
    """
    existing = definitions.get(declaration)
    if existing is None:
        definitions[declaration] = definition
        return True
    if existing != definition:
        raise ValueError(
            f"{_REDEFINITION_MESSAGE} {declaration!r}: {existing!r} != {definition!r}"
        )
    return False


# --------------------------------------------------------------------------
# Container
# --------------------------------------------------------------------------


def _fields_to_value(fields: Fields) -> tuple:
    if isinstance(fields, NamedFields):
        return ("NamedFields", ([tuple(pair) for pair in fields.fields],))
    if isinstance(fields, UnnamedFields):
        return ("UnnamedFields", (list(fields.fields),))
    return ("Empty", None)


def _definition_to_value(definition: Definition) -> tuple:
    if isinstance(definition, ArrayDefinition):
        return ("Array", {"length": definition.length, "elements": definition.elements})
    if isinstance(definition, SequenceDefinition):
        return ("Sequence", {"elements": definition.elements})
    if isinstance(definition, TupleDefinition):
        return ("Tuple", {"elements": list(definition.elements)})
    if isinstance(definition, EnumDefinition):
        return ("Enum", {"variants": [tuple(v) for v in definition.variants]})
    return ("Struct", {"fields": _fields_to_value(definition.fields)})


def _split_variant(value: Any, what: str) -> Tuple[str, Any]:
    try:
        name, payload = value
    except (TypeError, ValueError):
        raise BorshError(ErrorKind.INVALID_DATA, f"Malformed {what} value: {value!r}") from None
    return name, payload


def _fields_from_value(value: Any) -> Fields:
    name, payload = _split_variant(value, "Fields")
    if name == "NamedFields":
        return NamedFields(tuple(tuple(pair) for pair in payload[0]))
    if name == "UnnamedFields":
        return UnnamedFields(tuple(payload[0]))
    if name == "Empty":
        return EmptyFields()
    raise BorshError(ErrorKind.INVALID_DATA, f"Unknown Fields variant: {name!r}")


def _definition_from_value(value: Any) -> Definition:
    name, payload = _split_variant(value, "Definition")
    if name == "Array":
        return ArrayDefinition(payload["length"], payload["elements"])
    if name == "Sequence":
        return SequenceDefinition(payload["elements"])
    if name == "Tuple":
        return TupleDefinition(tuple(payload["elements"]))
    if name == "Enum":
        return EnumDefinition(tuple(tuple(v) for v in payload["variants"]))
    if name == "Struct":
        return StructDefinition(_fields_from_value(payload["fields"]))
    raise BorshError(ErrorKind.INVALID_DATA, f"Unknown Definition variant: {name!r}")


@dataclass
class BorshSchemaContainer:
    """All schema information needed to deserialize a single type."""

    declaration: Declaration
    definitions: Definitions = field(default_factory=dict)

    def to_value(self) -> Dict[str, Any]:
        """Return this container as a value of :func:`container_type`."""
        return {
            "declaration": self.declaration,
            "definitions": {
                name: _definition_to_value(definition)
                for name, definition in self.definitions.items()
            },
        }

    @classmethod
    def from_value(cls, value: Any) -> "BorshSchemaContainer":
        """Build a container from a value of :func:`container_type`."""
        if isinstance(value, Mapping):
            declaration = value["declaration"]
            definitions = value["definitions"]
        else:
            declaration = getattr(value, "declaration")
            definitions = getattr(value, "definitions")
        return cls(
            declaration,
            {name: _definition_from_value(d) for name, d in dict(definitions).items()},
        )


# --------------------------------------------------------------------------
# Type descriptors
# --------------------------------------------------------------------------


class BorshType(abc.ABC):
    """Describes a type that can be encoded with Borsh."""

    @abc.abstractmethod
    def declaration(self) -> Declaration:
        """The name of the type, e.g. ``Vec<u64>``."""

    @abc.abstractmethod
    def add_definitions_recursively(self, definitions: Definitions) -> None:
        """Add the definitions this type needs; primitives add nothing."""

    def schema_container(self) -> BorshSchemaContainer:
        """Collect the declaration and all definitions of this type."""
        definitions: Definitions = {}
        self.add_definitions_recursively(definitions)
        return BorshSchemaContainer(self.declaration(), definitions)


class _Primitive(BorshType):
    def add_definitions_recursively(self, definitions: Definitions) -> None:
        return None


class _WithoutSchema(BorshType):
    def declaration(self) -> Declaration:
        raise TypeError(f"{self!r} has no schema")

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        raise TypeError(f"{self!r} has no schema")


@dataclass(frozen=True)
class IntegerType(_Primitive):
    """A little-endian fixed-width integer."""

    bits: int
    signed: bool = False

    def __post_init__(self) -> None:
        if self.bits not in (8, 16, 32, 64, 128):
            raise ValueError(f"Unsupported integer width: {self.bits}")

    @property
    def size(self) -> int:
        return self.bits // 8

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def declaration(self) -> Declaration:
        return f"{'i' if self.signed else 'u'}{self.bits}"


@dataclass(frozen=True)
class FloatType(_Primitive):
    """An IEEE 754 float; NaNs are rejected when encoding and decoding."""

    bits: int = 64

    def __post_init__(self) -> None:
        if self.bits not in (32, 64):
            raise ValueError(f"Unsupported float width: {self.bits}")

    @property
    def size(self) -> int:
        return self.bits // 8

    def declaration(self) -> Declaration:
        return f"f{self.bits}"


@dataclass(frozen=True)
class BoolType(_Primitive):
    """A boolean stored as one byte, 0 or 1."""

    def declaration(self) -> Declaration:
        return "bool"


@dataclass(frozen=True)
class UnitType(_Primitive):
    """The empty type; it occupies no bytes and its value is ``None``."""

    def declaration(self) -> Declaration:
        return "nil"


@dataclass(frozen=True)
class StringType(_Primitive):
    """A UTF-8 string prefixed with its u32 byte length."""

    def declaration(self) -> Declaration:
        return "string"


@dataclass(frozen=True)
class OptionType(BorshType):
    """An optional value: ``None`` or the inner value."""

    inner: BorshType

    def declaration(self) -> Declaration:
        return f"Option<{self.inner.declaration()}>"

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        definition = EnumDefinition(
            (("None", UNIT.declaration()), ("Some", self.inner.declaration()))
        )
        if add_definition(self.declaration(), definition, definitions):
            self.inner.add_definitions_recursively(definitions)


@dataclass(frozen=True)
class ResultType(BorshType):
    """A success or failure value: ``("Ok", value)`` or ``("Err", value)``."""

    ok: BorshType
    err: BorshType

    def declaration(self) -> Declaration:
        return f"Result<{self.ok.declaration()}, {self.err.declaration()}>"

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        definition = EnumDefinition(
            (("Ok", self.ok.declaration()), ("Err", self.err.declaration()))
        )
        if add_definition(self.declaration(), definition, definitions):
            self.ok.add_definitions_recursively(definitions)


@dataclass(frozen=True)
class VecType(BorshType):
    """A sequence prefixed with its u32 length."""

    elements: BorshType

    def declaration(self) -> Declaration:
        return f"Vec<{self.elements.declaration()}>"

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        definition = SequenceDefinition(self.elements.declaration())
        if add_definition(self.declaration(), definition, definitions):
            self.elements.add_definitions_recursively(definitions)


@dataclass(frozen=True)
class ArrayType(BorshType):
    """A fixed-length array stored without a length prefix."""

    elements: BorshType
    length: int

    def __post_init__(self) -> None:
        if not 0 <= self.length <= _U32_MAX:
            raise ValueError(f"Invalid array length: {self.length}")

    def declaration(self) -> Declaration:
        return f"Array<{self.elements.declaration()}, {self.length}>"

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        definition = ArrayDefinition(self.length, self.elements.declaration())
        if add_definition(self.declaration(), definition, definitions):
            self.elements.add_definitions_recursively(definitions)


@dataclass(frozen=True)
class TupleType(BorshType):
    """A tuple of two or more values of possibly different types."""

    elements: Tuple[BorshType, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "elements", tuple(self.elements))
        if len(self.elements) < 2:
            raise ValueError("A tuple type needs at least two elements")

    def declaration(self) -> Declaration:
        inner = ", ".join(element.declaration() for element in self.elements)
        return f"Tuple<{inner}>"

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        definition = TupleDefinition(tuple(e.declaration() for e in self.elements))
        if add_definition(self.declaration(), definition, definitions):
            for element in self.elements:
                element.add_definitions_recursively(definitions)


@dataclass(frozen=True)
class HashMapType(BorshType):
    """A map stored as a u32 count followed by key-value pairs sorted by key."""

    key: BorshType
    value: BorshType

    def declaration(self) -> Declaration:
        return f"HashMap<{self.key.declaration()}, {self.value.declaration()}>"

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        entry = TupleType((self.key, self.value))
        definition = SequenceDefinition(entry.declaration())
        if add_definition(self.declaration(), definition, definitions):
            entry.add_definitions_recursively(definitions)


@dataclass(frozen=True)
class HashSetType(BorshType):
    """A set stored as a u32 count followed by its sorted items."""

    elements: BorshType

    def declaration(self) -> Declaration:
        return f"HashSet<{self.elements.declaration()}>"

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        definition = SequenceDefinition(self.elements.declaration())
        if add_definition(self.declaration(), definition, definitions):
            self.elements.add_definitions_recursively(definitions)


@dataclass(frozen=True)
class NonZeroType(_WithoutSchema):
    """An integer that must not be zero."""

    inner: IntegerType


@dataclass(frozen=True)
class Ipv4AddrType(_WithoutSchema):
    """An IPv4 address as four octets; values are ``ipaddress.IPv4Address``."""


@dataclass(frozen=True)
class Ipv6AddrType(_WithoutSchema):
    """An IPv6 address as sixteen octets; values are ``ipaddress.IPv6Address``."""


@dataclass(frozen=True)
class SocketAddrV4Type(_WithoutSchema):
    """An IPv4 address and a u16 port; values are ``(address, port)``."""


@dataclass(frozen=True)
class SocketAddrV6Type(_WithoutSchema):
    """An IPv6 address and a u16 port; values are ``(address, port)``."""


@dataclass(frozen=True)
class SocketAddrType(_WithoutSchema):
    """A tagged IPv4 (0) or IPv6 (1) socket address; values are ``(address, port)``."""


def _with_params(name: str, params: Tuple[BorshType, ...]) -> Declaration:
    if not params:
        return name
    return f"{name}<{', '.join(p.declaration() for p in params)}>"


def _normalise_fields(fields: Any) -> Tuple[str, tuple]:
    if fields is None:
        return "empty", ()
    if isinstance(fields, Mapping):
        items: tuple = tuple(fields.items())
    else:
        items = tuple(fields)
    if not items:
        return "empty", ()
    if all(isinstance(item, BorshType) for item in items):
        return "unnamed", items
    if all(
        isinstance(item, tuple)
        and len(item) == 2
        and isinstance(item[0], str)
        and isinstance(item[1], BorshType)
        for item in items
    ):
        return "named", items
    raise TypeError(
        "Struct fields must be all types or all (name, type) pairs, got " f"{items!r}"
    )


class StructType(BorshType):
    """A user-defined structure.

    ``fields`` is a sequence of ``(name, type)`` pairs (or a mapping) for named
    fields, a sequence of types for unnamed fields, or empty. ``params`` are the
    generic arguments shown in the declaration. ``factory`` builds decoded
    values from the fields, ``skipped`` maps fields that are never encoded to
    the value they take when decoding, and ``init`` is called on every decoded
    value.
    """

    def __init__(
        self,
        name: str,
        fields: Any = (),
        params: Iterable[BorshType] = (),
        *,
        factory: Optional[Callable[..., Any]] = None,
        skipped: Optional[Mapping[str, Any]] = None,
        init: Optional[Callable[[Any], Any]] = None,
    ) -> None:
        self.name = name
        self.params = tuple(params)
        self.fields = fields
        self.factory = factory
        self.skipped = dict(skipped or {})
        self.init = init

    @property
    def fields(self) -> tuple:
        return self._fields

    @fields.setter
    def fields(self, value: Any) -> None:
        self.style, self._fields = _normalise_fields(value)

    def _field_types(self) -> Tuple[BorshType, ...]:
        if self.style == "named":
            return tuple(t for _, t in self._fields)
        return self._fields

    def _fields_definition(self) -> Fields:
        if self.style == "named":
            return NamedFields(tuple((n, t.declaration()) for n, t in self._fields))
        if self.style == "unnamed":
            return UnnamedFields(tuple(t.declaration() for t in self._fields))
        return EmptyFields()

    def declaration(self) -> Declaration:
        return _with_params(self.name, self.params)

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        definition = StructDefinition(self._fields_definition())
        if add_definition(self.declaration(), definition, definitions):
            for field_type in self._field_types():
                field_type.add_definitions_recursively(definitions)

    def __repr__(self) -> str:
        return f"StructType({self.name!r}, style={self.style!r})"


class EnumType(BorshType):
    """A user-defined tagged union stored as a u8 variant index and its payload.

    ``variants`` is a sequence of ``(variant_name, fields)`` pairs where
    ``fields`` follows :class:`StructType`, or is a ready ``StructType``.
    Each variant's structure is declared as the enum name followed by the
    variant name, with the enum's generic arguments.
    """

    def __init__(
        self,
        name: str,
        variants: Iterable[Tuple[str, Any]],
        params: Iterable[BorshType] = (),
    ) -> None:
        self.name = name
        self.params = tuple(params)
        self.variants = variants

    @property
    def variants(self) -> Tuple[Tuple[str, StructType], ...]:
        return self._variants

    @variants.setter
    def variants(self, value: Iterable[Tuple[str, Any]]) -> None:
        variants = tuple(
            (
                variant,
                spec
                if isinstance(spec, StructType)
                else StructType(f"{self.name}{variant}", spec, self.params),
            )
            for variant, spec in value
        )
        if len(variants) > _MAX_ENUM_VARIANTS:
            raise ValueError(f"An enum holds at most {_MAX_ENUM_VARIANTS} variants")
        self._variants = variants

    def declaration(self) -> Declaration:
        return _with_params(self.name, self.params)

    def add_definitions_recursively(self, definitions: Definitions) -> None:
        definition = EnumDefinition(
            tuple((variant, struct.declaration()) for variant, struct in self._variants)
        )
        if add_definition(self.declaration(), definition, definitions):
            for _, struct in self._variants:
                struct.add_definitions_recursively(definitions)

    def __repr__(self) -> str:
        return f"EnumType({self.name!r}, variants={[v for v, _ in self._variants]!r})"


U8 = IntegerType(8)
U16 = IntegerType(16)
U32 = IntegerType(32)
U64 = IntegerType(64)
U128 = IntegerType(128)
I8 = IntegerType(8, signed=True)
I16 = IntegerType(16, signed=True)
I32 = IntegerType(32, signed=True)
I64 = IntegerType(64, signed=True)
I128 = IntegerType(128, signed=True)
F32 = FloatType(32)
F64 = FloatType(64)
BOOL = BoolType()
UNIT = UnitType()
STRING = StringType()


@functools.lru_cache(maxsize=None)
def container_type() -> StructType:
    """The type of :class:`BorshSchemaContainer` itself."""
    fields_type = EnumType(
        "Fields",
        [
            ("NamedFields", [VecType(TupleType((STRING, STRING)))]),
            ("UnnamedFields", [VecType(STRING)]),
            ("Empty", ()),
        ],
    )
    definition_type = EnumType(
        "Definition",
        [
            ("Array", [("length", U32), ("elements", STRING)]),
            ("Sequence", [("elements", STRING)]),
            ("Tuple", [("elements", VecType(STRING))]),
            ("Enum", [("variants", VecType(TupleType((STRING, STRING))))]),
            ("Struct", [("fields", fields_type)]),
        ],
    )
    return StructType(
        "BorshSchemaContainer",
        [("declaration", STRING), ("definitions", HashMapType(STRING, definition_type))],
    )