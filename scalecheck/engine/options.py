# Analyzer options: exploration bounds and target selection.

from __future__ import annotations

from dataclasses import dataclass

from scalecheck.engine.layout import TargetLayout, get_target


@dataclass
class AnalyzerOptions:
    """
    Knobs for the path-sensitive engine.

    - target: data layout preset used for sizeof/offsetof ("lp64" or "ilp32").
    - max_loop_iterations: loop bodies are unrolled at most this many times per path.
    - max_inline_depth: calls to functions defined in the same file are inlined up to this depth.
    - max_paths: live paths kept per block; extra paths are dropped.
    - include_headers: also analyze .h files when scanning directories.
    """

    target: str = "lp64"
    max_loop_iterations: int = 4
    max_inline_depth: int = 4
    max_paths: int = 256
    include_headers: bool = False

    def __post_init__(self) -> None:
        get_target(self.target)
        for name in ("max_loop_iterations", "max_inline_depth", "max_paths"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if self.max_paths == 0:
            raise ValueError("max_paths must be at least 1")

    @property
    def layout(self) -> TargetLayout:
        return get_target(self.target)
