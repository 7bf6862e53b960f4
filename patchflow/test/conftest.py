import pytest

from helpers import pin


@pytest.fixture
def add100_types():
    return {
        "core/add100": {
            "pure": True,
            "pins": {
                "valueIn": pin("input", "number"),
                "valueOut": pin("output", "number"),
            },
        },
    }


@pytest.fixture
def io_types():
    return {
        "core/inputBool": {"pins": {"PIN": pin("output", "bool")}},
        "core/outputBool": {"pins": {"PIN": pin("input", "bool")}},
    }


@pytest.fixture
def button_led_types():
    return {
        "button": {"pins": {"state": pin("output", "bool")}},
        "led": {"pins": {"brightness": pin("input", "number")}},
    }


@pytest.fixture
def device_types(io_types, button_led_types):
    return {**io_types, **button_led_types}


@pytest.fixture
def number_types():
    return {
        "math/source": {"pure": True, "pins": {"out": pin("output")}},
        "math/double": {
            "pure": True,
            "pins": {"in": pin("input"), "out": pin("output")},
            "impl": {"js": "module.exports.evaluate = x => x * 2;"},
        },
        "math/sink": {"pins": {"in": pin("input")}},
    }
