# Exception hierarchy for the analysis engine.

from __future__ import annotations


class ScalecheckError(Exception):
    """Base class for errors raised by scalecheck itself."""


class TypeLayoutError(ScalecheckError):
    """A size or alignment was requested for a type that has none (incomplete, dependent, VLA)."""


class UnsupportedConstructError(ScalecheckError):
    """The front end met a declarator or type specifier it cannot model."""

    def __init__(self, node_type: str, detail: str = "") -> None:
        self.node_type = node_type
        msg = f"unsupported construct: {node_type}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)
