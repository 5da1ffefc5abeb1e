"""Tests for configuration and analyzer options."""

import pytest

from scalecheck.config import AnalyzerOptions, Config, get_default_config, get_enabled_rules
from scalecheck.engine.layout import ILP32, LP64
from scalecheck.rules.bad_scaled_pointer_arithmetic import BadScaledPointerArithmeticRule


def test_default_config_enables_rule():
    rules = get_enabled_rules(get_default_config())
    assert [type(r) for r in rules] == [BadScaledPointerArithmeticRule]


def test_none_means_default():
    assert [r.id for r in get_enabled_rules(None)] == ["bad-scaled-pointer-arithmetic"]


def test_default_options():
    options = get_default_config().options
    assert options.target == "lp64"
    assert options.layout is LP64
    assert options.max_loop_iterations == 4
    assert options.max_inline_depth == 4
    assert options.max_paths == 256
    assert not options.include_headers


def test_overrides():
    options = get_default_config(target="ILP32", max_loop_iterations=1).options
    assert options.layout is ILP32
    assert options.max_loop_iterations == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"target": "pdp11"},
        {"max_loop_iterations": -1},
        {"max_inline_depth": -2},
        {"max_paths": 0},
    ],
)
def test_invalid_options(overrides):
    with pytest.raises(ValueError):
        AnalyzerOptions(**overrides)


def test_empty_config_runs_nothing():
    assert list(get_enabled_rules(Config())) == []
