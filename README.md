# borshkit

Borsh is a compact, deterministic binary format. Integers are little-endian
and fixed-width. Strings, vectors, maps and sets start with a `u32` length,
and maps and sets are written sorted by key, so equal values always give the
same bytes. The bytes carry no type information, so every value is encoded
and decoded against a type description.

## Type descriptions

`borshkit.schema` holds the type descriptions, all subclasses of `BorshType`:

- primitives: `IntegerType(bits, signed=False)`, `FloatType(bits)`,
  `BoolType`, `UnitType` and `StringType`, with ready-made instances `U8` to
  `U128`, `I8` to `I128`, `F32`, `F64`, `BOOL`, `UNIT` and `STRING`;
- containers: `OptionType`, `ResultType`, `VecType`, `ArrayType`,
  `TupleType`, `HashMapType` and `HashSetType`;
- `NonZeroType`, `Ipv4AddrType`, `Ipv6AddrType`, `SocketAddrV4Type`,
  `SocketAddrV6Type` and `SocketAddrType`;
- user-defined `StructType` and `EnumType`.

Python values map onto them like this:

| Type | Python value |
| --- | --- |
| integers, floats, bool, string | `int`, `float`, `bool`, `str` |
| `UnitType` | `None` |
| `OptionType` | `None` or the inner value |
| `ResultType` | `("Ok", value)` or `("Err", value)` |
| `VecType`, `ArrayType` | a sequence; decodes to a `list`, or to `bytes` for `u8` elements |
| `TupleType` | a tuple |
| `HashMapType` | a mapping; decodes to a `dict` |
| `HashSetType` | a set; decodes to a `set` |
| IP addresses | `ipaddress.IPv4Address` / `IPv6Address` |
| socket addresses | `(address, port)` |
| `StructType` with named fields | a mapping or an object with those attributes; decodes to a `dict` |
| `StructType` with unnamed fields | a sequence; decodes to a tuple |
| `StructType` without fields | `None` |
| `EnumType` | `(variant_name, payload)`, or just the variant name when it has no fields |

When decoding, map keys and set items that are not hashable, such as lists,
become tuples. A `StructType` can take a `factory` that builds the decoded
value from its fields, `skipped` fields that are never encoded and receive a
fixed value when decoding, and an `init` callable run on every decoded value.

## Encoding and decoding

```python
from borshkit.schema import U8, I32, F64, StructType, EnumType, VecType
from borshkit.ser import to_vec
from borshkit.de import try_from_slice

to_vec(VecType(U8), [1, 2])                  # b"\x02\x00\x00\x00\x01\x02"
try_from_slice(VecType(U8), b"\x02\x00\x00\x00\x01\x02")   # b"\x01\x02"

point = StructType("Point", [("x", I32), ("y", I32)])
data = to_vec(point, {"x": 1, "y": -1})
try_from_slice(point, data)                  # {"x": 1, "y": -1}

shape = EnumType("Shape", [("Empty", ()), ("Circle", [("radius", F64)])])
try_from_slice(shape, to_vec(shape, "Empty"))  # ("Empty", None)
```

- `borshkit.ser.to_vec(type_, value)` returns `bytes`.
- `borshkit.ser.to_writer(writer, type_, value)` and
  `serialize(type_, value, writer)` write into a `bytearray` (which grows),
  or into any object with a `write` method, such as a file, `io.BytesIO` or
  `borshkit.errors.FixedBufferWriter`, a writer over a pre-allocated
  writable buffer.
- `borshkit.de.try_from_slice(type_, data)` decodes a whole buffer and fails
  if bytes are left over.
- `borshkit.de.deserialize(type_, cursor)` reads one value from a `Cursor`
  (or from raw bytes) and leaves the rest unread; `Cursor.remaining()` tells
  how much is left.

## Schemas

Every type can describe itself. `declaration()` gives its name, for example
`Vec<u64>` or `HashMap<u64, string>`. `schema_container()` returns a
`BorshSchemaContainer` that holds the declaration together with every
definition (`ArrayDefinition`, `SequenceDefinition`, `TupleDefinition`,
`EnumDefinition` or `StructDefinition` with `NamedFields`, `UnnamedFields`
or `EmptyFields`) needed to decode the type:

```python
VecType(U64).schema_container()
# BorshSchemaContainer(declaration='Vec<u64>',
#                      definitions={'Vec<u64>': SequenceDefinition(elements='u64')})
```

Two different definitions under the same name raise `ValueError`. The
non-zero, IP address and socket address types have no schema; asking for it
raises `TypeError`. `container_type()` is the type of a
`BorshSchemaContainer` itself, used with `to_value()` and `from_value()`.

`borshkit.schema_helpers.try_to_vec_with_schema(type_, value)` writes the
encoded schema first and then the value.
`try_from_slice_with_schema(type_, data)` checks the embedded schema against
the schema of `type_` before it returns the value.

## Errors

Malformed input raises `borshkit.errors.BorshError`. Its `kind` is an
`ErrorKind` and its message describes the problem, for example
`Unexpected length of input`, `Not all bytes read`,
`Invalid bool representation: 2`, `Unexpected variant index: 123`,
`Expected a non-zero value` or `Borsh schema does not match`.

Decoding a NaN float raises `BorshError`; encoding one raises `ValueError`.
Encoding a value of the wrong Python type, such as a non-`str` for
`StringType`, raises `TypeError`.

## Command line

```
borshkit-schema-schema [OUTPUT]
```

This prints the `BorshSchemaContainer` that describes
`BorshSchemaContainer` itself and writes it, Borsh-encoded, to `OUTPUT`
(`schema_schema.dat` in the current directory by default).

## What it does not do

Structs and enums are not derived from Python classes: describe each one by
hand with `StructType` or `EnumType`.

## Installing

```
pip install borshkit
pip install "borshkit[test]"   # with pytest for the tests
```