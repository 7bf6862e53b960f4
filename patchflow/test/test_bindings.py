import pytest

from helpers import patch, pin, project

from patchflow.compiler import transform
from patchflow.compiler.bindings import literal_type
from patchflow.compiler.errors import ErrorKind, UnresolvableTerminalType


@pytest.fixture
def wrap_patch():
    """A patch that passes one value straight through, without declaring its type."""
    return patch({1: "core/input", 2: "core/output"}, [(1, "PIN", "PIN", 2)])


class TestTerminalTypes:

    def test_generic_terminals_take_neighbour_type(self, number_types, wrap_patch):
        doc = project(
            {
                "@/main": patch(
                    {1: "math/source", 2: "@/wrap", 3: "math/sink"},
                    [(1, "out", "input_1", 2), (2, "output_2", "in", 3)],
                ),
                "@/wrap": wrap_patch,
            },
            number_types,
        )
        unit = transform(doc, "@/main")

        assert unit.topology == [1, 4, 5, 3]
        assert unit.nodes[4].input_types == {"PIN": "number"}
        assert unit.nodes[5].input_types == {"PIN": "number"}

    def test_only_untyped_terminals(self, wrap_patch):
        doc = project({
            "@/main": patch({1: "@/wrap", 2: "@/wrap"}, [(1, "output_2", "input_1", 2)]),
            "@/wrap": wrap_patch,
        })
        with pytest.raises(UnresolvableTerminalType) as excinfo:
            transform(doc, "@/main")

        assert excinfo.value.kind is ErrorKind.UNRESOLVABLE_TERMINAL_TYPE
        assert excinfo.value.payload["nodeId"] == 3
        assert excinfo.value.payload["debugId"] == "1~1"

    def test_untyped_primitive_neighbour_gives_any(self, wrap_patch):
        """Primitives of unknown type around a generic pass-through."""
        doc = project({
            "@/main": patch(
                {1: "vendor/blob", 2: "@/wrap", 3: "vendor/blob"},
                [(1, "out", "input_1", 2), (2, "output_2", "in", 3)],
            ),
            "@/wrap": wrap_patch,
        })
        unit = transform(doc, "@/main")

        assert unit.topology == [1, 4, 5, 3]
        assert unit.nodes[4].input_types == {"PIN": "any"}
        assert unit.nodes[5].input_types == {"PIN": "any"}

    def test_unlinked_generic_terminal_uses_literal(self):
        doc = project({
            "@/main": patch({1: {"type": "@/one", "properties": {"input_1": "hello"}}}),
            "@/one": patch({1: "core/input"}),
        })
        unit = transform(doc, "@/main")

        assert unit.nodes[2].input_types == {"PIN": "string"}
        assert unit.nodes[2].props == {"PIN": "hello"}

    def test_literal_type(self):
        assert literal_type(True) == "bool"
        assert literal_type(3) == "number"
        assert literal_type(2.5) == "number"
        assert literal_type("x") == "string"
        assert literal_type(None) is None


class TestDefaults:

    @pytest.fixture
    def types(self):
        return {
            "math/scale": {
                "pure": True,
                "pins": {
                    "IN": pin("input", "number"),
                    "K": pin("input", "number", default=1),
                    "OUT": pin("output", "number"),
                },
            },
        }

    def test_unlinked_pins_get_defaults(self, types):
        doc = project({"@/main": patch({1: "math/scale"})}, types)
        assert transform(doc, "@/main").nodes[1].props == {"K": 1}

    def test_literal_overrides_default(self, types):
        doc = project({"@/main": patch({1: {"type": "math/scale", "properties": {"K": 4}}})}, types)
        assert transform(doc, "@/main").nodes[1].props == {"K": 4}

    def test_linked_pin_has_no_default(self, types):
        doc = project(
            {"@/main": patch({1: "math/scale", 2: "math/scale"}, [(1, "OUT", "K", 2)])},
            types,
        )
        unit = transform(doc, "@/main")

        assert unit.nodes[2].props == {}
        assert unit.nodes[2].input_types == {"IN": "number", "K": "number"}
