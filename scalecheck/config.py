"""
Scanner configuration: which rules run and the engine options they run with.

The CLI builds a Config from its flags through get_default_config(); tests
and library callers can construct one directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Sequence

from scalecheck.engine.options import AnalyzerOptions
from scalecheck.rules.bad_scaled_pointer_arithmetic import BadScaledPointerArithmeticRule
from scalecheck.rules.base import Rule

__all__ = ["AnalyzerOptions", "Config", "get_default_config", "get_enabled_rules"]


@dataclass
class Config:
    """
    Scanner configuration.

    rules: rule instances run on every file, in order.
    options: bounds and target layout for the path-sensitive engine.
    """

    rules: Sequence[Rule] = field(default_factory=list)
    options: AnalyzerOptions = field(default_factory=AnalyzerOptions)


def get_default_config(**overrides: Any) -> Config:
    """
    Return the configuration with every implemented rule enabled.

    Keyword arguments override AnalyzerOptions fields, e.g.
    get_default_config(target="ilp32", max_loop_iterations=2). Invalid
    values raise ValueError.
    """
    rules: List[Rule] = [
        BadScaledPointerArithmeticRule(),
    ]
    return Config(rules=rules, options=AnalyzerOptions(**overrides))


def get_enabled_rules(config: Config | None = None) -> Sequence[Rule]:
    """Rules from config, or from the default config when None."""
    if config is None:
        config = get_default_config()
    return config.rules
