import pytest

from borshkit.errors import BorshError
from borshkit.schema import (
    BOOL,
    STRING,
    U8,
    U32,
    U64,
    ArrayDefinition,
    ArrayType,
    BorshSchemaContainer,
    EmptyFields,
    EnumDefinition,
    EnumType,
    HashMapType,
    HashSetType,
    IntegerType,
    Ipv4AddrType,
    NamedFields,
    NonZeroType,
    OptionType,
    ResultType,
    SequenceDefinition,
    SocketAddrType,
    StructDefinition,
    StructType,
    TupleDefinition,
    TupleType,
    UnnamedFields,
    VecType,
    add_definition,
    container_type,
)

EMPTY = StructDefinition(EmptyFields())


def defs_of(type_):
    definitions = {}
    type_.add_definitions_recursively(definitions)
    return definitions


def option_def(inner):
    return EnumDefinition((("None", "nil"), ("Some", inner)))


def test_simple_option():
    t = OptionType(U64)
    assert t.declaration() == "Option<u64>"
    assert defs_of(t) == {"Option<u64>": option_def("u64")}


def test_nested_option():
    t = OptionType(OptionType(U64))
    assert t.declaration() == "Option<Option<u64>>"
    assert defs_of(t) == {
        "Option<u64>": option_def("u64"),
        "Option<Option<u64>>": option_def("Option<u64>"),
    }


def test_simple_vec():
    t = VecType(U64)
    assert t.declaration() == "Vec<u64>"
    assert defs_of(t) == {"Vec<u64>": SequenceDefinition("u64")}


def test_nested_vec():
    t = VecType(VecType(U64))
    assert t.declaration() == "Vec<Vec<u64>>"
    assert defs_of(t) == {
        "Vec<u64>": SequenceDefinition("u64"),
        "Vec<Vec<u64>>": SequenceDefinition("Vec<u64>"),
    }


def test_simple_tuple():
    t = TupleType((U64, STRING))
    assert t.declaration() == "Tuple<u64, string>"
    assert defs_of(t) == {"Tuple<u64, string>": TupleDefinition(["u64", "string"])}


def test_nested_tuple():
    t = TupleType((U64, TupleType((U8, BOOL)), STRING))
    assert t.declaration() == "Tuple<u64, Tuple<u8, bool>, string>"
    assert defs_of(t) == {
        "Tuple<u64, Tuple<u8, bool>, string>": TupleDefinition(
            ["u64", "Tuple<u8, bool>", "string"]
        ),
        "Tuple<u8, bool>": TupleDefinition(["u8", "bool"]),
    }


def test_simple_map():
    t = HashMapType(U64, STRING)
    assert t.declaration() == "HashMap<u64, string>"
    assert defs_of(t) == {
        "HashMap<u64, string>": SequenceDefinition("Tuple<u64, string>"),
        "Tuple<u64, string>": TupleDefinition(["u64", "string"]),
    }


def test_simple_set():
    t = HashSetType(STRING)
    assert t.declaration() == "HashSet<string>"
    assert defs_of(t) == {"HashSet<string>": SequenceDefinition("string")}


def test_simple_array():
    t = ArrayType(U64, 32)
    assert t.declaration() == "Array<u64, 32>"
    assert defs_of(t) == {"Array<u64, 32>": ArrayDefinition(32, "u64")}


def test_nested_array():
    t = ArrayType(ArrayType(ArrayType(U64, 9), 10), 32)
    assert t.declaration() == "Array<Array<Array<u64, 9>, 10>, 32>"
    assert defs_of(t) == {
        "Array<u64, 9>": ArrayDefinition(9, "u64"),
        "Array<Array<u64, 9>, 10>": ArrayDefinition(10, "Array<u64, 9>"),
        "Array<Array<Array<u64, 9>, 10>, 32>": ArrayDefinition(
            32, "Array<Array<u64, 9>, 10>"
        ),
    }


def test_string():
    assert STRING.declaration() == "string"
    assert defs_of(STRING) == {}


def test_result_declaration_and_definition():
    t = ResultType(U64, STRING)
    assert t.declaration() == "Result<u64, string>"
    assert defs_of(t) == {
        "Result<u64, string>": EnumDefinition((("Ok", "u64"), ("Err", "string")))
    }


# Structs


def test_unit_struct():
    t = StructType("A")
    assert t.declaration() == "A"
    assert defs_of(t) == {"A": EMPTY}


def test_simple_struct():
    t = StructType("A", [("_f1", U64), ("_f2", STRING)])
    assert t.declaration() == "A"
    assert defs_of(t) == {
        "A": StructDefinition(NamedFields([("_f1", "u64"), ("_f2", "string")]))
    }


def test_struct_fields_from_mapping():
    t = StructType("A", {"_f1": U64, "_f2": STRING})
    assert t.style == "named"
    assert defs_of(t)["A"] == StructDefinition(
        NamedFields([("_f1", "u64"), ("_f2", "string")])
    )


def test_boxed_struct():
    t = StructType("A", [("_f1", U64), ("_f2", STRING), ("_f3", VecType(U8))])
    assert defs_of(t) == {
        "Vec<u8>": SequenceDefinition("u8"),
        "A": StructDefinition(
            NamedFields([("_f1", "u64"), ("_f2", "string"), ("_f3", "Vec<u8>")])
        ),
    }


def test_wrapper_struct():
    t = StructType("A", [U64], params=(U64,))
    assert t.declaration() == "A<u64>"
    assert defs_of(t) == {"A<u64>": StructDefinition(UnnamedFields(["u64"]))}


def test_tuple_struct():
    t = StructType("A", [U64, STRING])
    assert t.declaration() == "A"
    assert defs_of(t) == {"A": StructDefinition(UnnamedFields(["u64", "string"]))}


def test_tuple_struct_params():
    t = StructType("A", [U64, STRING], params=(U64, STRING))
    assert t.declaration() == "A<u64, string>"
    assert defs_of(t) == {
        "A<u64, string>": StructDefinition(UnnamedFields(["u64", "string"]))
    }


def test_simple_generics():
    t = StructType(
        "A", [("_f1", HashMapType(U64, STRING)), ("_f2", STRING)], params=(U64, STRING)
    )
    assert t.declaration() == "A<u64, string>"
    assert defs_of(t) == {
        "A<u64, string>": StructDefinition(
            NamedFields([("_f1", "HashMap<u64, string>"), ("_f2", "string")])
        ),
        "HashMap<u64, string>": SequenceDefinition("Tuple<u64, string>"),
        "Tuple<u64, string>": TupleDefinition(["u64", "string"]),
    }


def test_skipped_fields_are_not_in_schema():
    t = StructType("A", [("x", U64)], skipped={"y": None})
    assert defs_of(t) == {"A": StructDefinition(NamedFields([("x", "u64")]))}


def test_mixed_fields_rejected():
    with pytest.raises(TypeError):
        StructType("A", [U64, ("x", U64)])


# Enums


def test_simple_enum():
    t = EnumType("A", [("Bacon", ()), ("Eggs", ())])
    assert t.declaration() == "A"
    assert defs_of(t) == {
        "ABacon": EMPTY,
        "AEggs": EMPTY,
        "A": EnumDefinition([("Bacon", "ABacon"), ("Eggs", "AEggs")]),
    }


def test_single_field_enum():
    t = EnumType("A", [("Bacon", ())])
    assert t.declaration() == "A"
    assert defs_of(t) == {
        "ABacon": EMPTY,
        "A": EnumDefinition([("Bacon", "ABacon")]),
    }


def _salad_parts():
    return {name: StructType(name) for name in ("Tomatoes", "Cucumber", "Oil", "Wrapper", "Filling")}


def test_complex_enum():
    p = _salad_parts()
    t = EnumType(
        "A",
        [
            ("Bacon", ()),
            ("Eggs", ()),
            ("Salad", [p["Tomatoes"], p["Cucumber"], p["Oil"]]),
            ("Sausage", [("wrapper", p["Wrapper"]), ("filling", p["Filling"])]),
        ],
    )
    assert t.declaration() == "A"
    assert defs_of(t) == {
        "Cucumber": EMPTY,
        "ASalad": StructDefinition(UnnamedFields(["Tomatoes", "Cucumber", "Oil"])),
        "ABacon": EMPTY,
        "Oil": EMPTY,
        "A": EnumDefinition(
            [
                ("Bacon", "ABacon"),
                ("Eggs", "AEggs"),
                ("Salad", "ASalad"),
                ("Sausage", "ASausage"),
            ]
        ),
        "Wrapper": EMPTY,
        "Tomatoes": EMPTY,
        "ASausage": StructDefinition(
            NamedFields([("wrapper", "Wrapper"), ("filling", "Filling")])
        ),
        "AEggs": EMPTY,
        "Filling": EMPTY,
    }


def test_complex_enum_generics():
    p = _salad_parts()
    c, w = p["Cucumber"], p["Wrapper"]
    t = EnumType(
        "A",
        [
            ("Bacon", ()),
            ("Eggs", ()),
            ("Salad", [p["Tomatoes"], c, p["Oil"]]),
            ("Sausage", [("wrapper", w), ("filling", p["Filling"])]),
        ],
        params=(c, w),
    )
    assert t.declaration() == "A<Cucumber, Wrapper>"
    assert defs_of(t) == {
        "Cucumber": EMPTY,
        "ASalad<Cucumber, Wrapper>": StructDefinition(
            UnnamedFields(["Tomatoes", "Cucumber", "Oil"])
        ),
        "ABacon<Cucumber, Wrapper>": EMPTY,
        "Oil": EMPTY,
        "A<Cucumber, Wrapper>": EnumDefinition(
            [
                ("Bacon", "ABacon<Cucumber, Wrapper>"),
                ("Eggs", "AEggs<Cucumber, Wrapper>"),
                ("Salad", "ASalad<Cucumber, Wrapper>"),
                ("Sausage", "ASausage<Cucumber, Wrapper>"),
            ]
        ),
        "Wrapper": EMPTY,
        "Tomatoes": EMPTY,
        "ASausage<Cucumber, Wrapper>": StructDefinition(
            NamedFields([("wrapper", "Wrapper"), ("filling", "Filling")])
        ),
        "AEggs<Cucumber, Wrapper>": EMPTY,
        "Filling": EMPTY,
    }


def test_too_many_variants():
    with pytest.raises(ValueError):
        EnumType("Big", [(f"V{i}", ()) for i in range(257)])


# Nested


def _nested_type():
    tomatoes = StructType("Tomatoes")
    cucumber = StructType("Cucumber")
    filling = StructType("Filling")

    def oil(k, v):
        return StructType(
            "Oil", [("seeds", HashMapType(k, v)), ("liquid", OptionType(k))], params=(k, v)
        )

    def a(c, w):
        return EnumType(
            "A",
            [
                ("Bacon", ()),
                ("Eggs", ()),
                ("Salad", [tomatoes, c, oil(U64, STRING)]),
                ("Sausage", [("wrapper", w), ("filling", filling)]),
            ],
            params=(c, w),
        )

    def wrapper(t):
        return StructType("Wrapper", [("foo", OptionType(t)), ("bar", a(t, t))], params=(t,))

    return a(cucumber, wrapper(STRING))


def test_duplicated_instantiations():
    t = _nested_type()
    assert t.declaration() == "A<Cucumber, Wrapper<string>>"

    def variants(suffix):
        return EnumDefinition(
            [(v, f"A{v}{suffix}") for v in ("Bacon", "Eggs", "Salad", "Sausage")]
        )

    assert defs_of(t) == {
        "A<Cucumber, Wrapper<string>>": variants("<Cucumber, Wrapper<string>>"),
        "A<string, string>": variants("<string, string>"),
        "ABacon<Cucumber, Wrapper<string>>": EMPTY,
        "ABacon<string, string>": EMPTY,
        "AEggs<Cucumber, Wrapper<string>>": EMPTY,
        "AEggs<string, string>": EMPTY,
        "ASalad<Cucumber, Wrapper<string>>": StructDefinition(
            UnnamedFields(["Tomatoes", "Cucumber", "Oil<u64, string>"])
        ),
        "ASalad<string, string>": StructDefinition(
            UnnamedFields(["Tomatoes", "string", "Oil<u64, string>"])
        ),
        "ASausage<Cucumber, Wrapper<string>>": StructDefinition(
            NamedFields([("wrapper", "Wrapper<string>"), ("filling", "Filling")])
        ),
        "ASausage<string, string>": StructDefinition(
            NamedFields([("wrapper", "string"), ("filling", "Filling")])
        ),
        "Cucumber": EMPTY,
        "Filling": EMPTY,
        "HashMap<u64, string>": SequenceDefinition("Tuple<u64, string>"),
        "Oil<u64, string>": StructDefinition(
            NamedFields([("seeds", "HashMap<u64, string>"), ("liquid", "Option<u64>")])
        ),
        "Option<string>": option_def("string"),
        "Option<u64>": option_def("u64"),
        "Tomatoes": EMPTY,
        "Tuple<u64, string>": TupleDefinition(["u64", "string"]),
        "Wrapper<string>": StructDefinition(
            NamedFields([("foo", "Option<string>"), ("bar", "A<string, string>")])
        ),
    }


# Helpers and container


def test_add_definition_accepts_equal_and_rejects_different():
    definitions = {}
    assert add_definition("X", SequenceDefinition("u8"), definitions) is True
    assert add_definition("X", SequenceDefinition("u8"), definitions) is False
    with pytest.raises(ValueError, match="Redefining type schema"):
        add_definition("X", SequenceDefinition("u16"), definitions)
    assert definitions == {"X": SequenceDefinition("u8")}


def test_same_name_different_structs_conflict():
    t = StructType("Pair", [("a", StructType("A", [U8])), ("b", StructType("A", [U32]))])
    definitions = {}
    with pytest.raises(ValueError, match="Redefining type schema"):
        t.add_definitions_recursively(definitions)


def test_schema_container():
    container = OptionType(U64).schema_container()
    assert container == BorshSchemaContainer(
        "Option<u64>", {"Option<u64>": option_def("u64")}
    )


def test_types_without_schema():
    for t in (NonZeroType(U8), Ipv4AddrType(), SocketAddrType()):
        with pytest.raises(TypeError):
            t.declaration()


def test_integer_properties_and_validation():
    assert IntegerType(16, signed=True).declaration() == "i16"
    assert IntegerType(16, signed=True).min_value == -32768
    assert U8.max_value == 255
    assert U64.size == 8
    with pytest.raises(ValueError):
        IntegerType(24)


def test_tuple_needs_two_elements():
    with pytest.raises(ValueError):
        TupleType((U8,))


def test_container_type_schema():
    container = container_type().schema_container()
    assert container.declaration == "BorshSchemaContainer"
    defs = container.definitions
    assert defs["BorshSchemaContainer"] == StructDefinition(
        NamedFields(
            [("declaration", "string"), ("definitions", "HashMap<string, Definition>")]
        )
    )
    assert defs["HashMap<string, Definition>"] == SequenceDefinition(
        "Tuple<string, Definition>"
    )
    assert defs["Definition"] == EnumDefinition(
        [
            ("Array", "DefinitionArray"),
            ("Sequence", "DefinitionSequence"),
            ("Tuple", "DefinitionTuple"),
            ("Enum", "DefinitionEnum"),
            ("Struct", "DefinitionStruct"),
        ]
    )
    assert defs["DefinitionArray"] == StructDefinition(
        NamedFields([("length", "u32"), ("elements", "string")])
    )
    assert defs["FieldsNamedFields"] == StructDefinition(
        UnnamedFields(["Vec<Tuple<string, string>>"])
    )
    assert defs["FieldsEmpty"] == EMPTY


def test_container_value_round_trip():
    original = _nested_type().schema_container()
    value = original.to_value()
    assert value["declaration"] == "A<Cucumber, Wrapper<string>>"
    assert value["definitions"]["Tomatoes"] == ("Struct", {"fields": ("Empty", None)})
    assert value["definitions"]["Tuple<u64, string>"] == (
        "Tuple",
        {"elements": ["u64", "string"]},
    )
    assert BorshSchemaContainer.from_value(value) == original


def test_container_from_value_rejects_unknown_variant():
    with pytest.raises(BorshError):
        BorshSchemaContainer.from_value(
            {"declaration": "X", "definitions": {"X": ("Bogus", {})}}
        )