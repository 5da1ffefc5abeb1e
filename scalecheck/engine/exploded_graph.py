# Exploded graph: (program point, state) nodes linked along explored paths.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from scalecheck.engine.state import ProgramState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramPoint:
    """A location in the analysed program: one syntax node within one stack frame."""

    node_id: int
    frame: int
    kind: str = "stmt"
    # 1-based position and byte span of the syntax node, for reports.
    line: int = 0
    column: int = 0
    start_byte: int = 0
    end_byte: int = 0
    end_line: int = 0
    end_column: int = 0


@dataclass(eq=False)
class ExplodedNode:
    location: ProgramPoint
    state: ProgramState
    is_sink: bool = False
    preds: List["ExplodedNode"] = field(default_factory=list)

    def path(self) -> Iterator["ExplodedNode"]:
        """Walk back to the root along first predecessors."""
        node: Optional[ExplodedNode] = self
        seen = set()
        while node is not None and id(node) not in seen:
            seen.add(id(node))
            yield node
            node = node.preds[0] if node.preds else None

    def __repr__(self) -> str:
        sink = " sink" if self.is_sink else ""
        return f"<ExplodedNode {self.location.kind}@{self.location.line}:{self.location.column}{sink}>"


class ExplodedGraph:
    """Owns every node of one analysis run and folds identical (point, state) pairs."""

    def __init__(self) -> None:
        self._nodes: Dict[Tuple[ProgramPoint, ProgramState, bool], ExplodedNode] = {}
        self.roots: List[ExplodedNode] = []

    def get_node(
        self,
        location: ProgramPoint,
        state: ProgramState,
        pred: Optional[ExplodedNode] = None,
        is_sink: bool = False,
    ) -> Tuple[ExplodedNode, bool]:
        """Return the node for (location, state), creating it if needed, plus whether it is new."""
        key = (location, state, is_sink)
        node = self._nodes.get(key)
        is_new = node is None
        if node is None:
            node = ExplodedNode(location=location, state=state, is_sink=is_sink)
            self._nodes[key] = node
            if pred is None:
                self.roots.append(node)
        if pred is not None and pred not in node.preds:
            node.preds.append(pred)
        return node, is_new

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ExplodedNode]:
        return iter(self._nodes.values())
