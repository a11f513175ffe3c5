"""
Budgeted depth-first traversal shared by the extraction and diagnostic walkers.

The walk uses an explicit stack instead of recursion so that exports with
millions of nodes cannot exhaust the interpreter's recursion limit. Each frame
carries the nearest-enclosing absolute time inherited from its parent; siblings
never see each other's time.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from timeline_replay.core.paths import child_path, index_path
from timeline_replay.ingestion.classifiers import (
    OFFSET_PATH_KEY,
    find_own_time,
    resolve_timestamp_ms,
)

logger = logging.getLogger(__name__)

ROOT_PATH = "$"


@dataclass
class ScanBudget:
    """Explicit node-visit counter, owned by exactly one walk."""

    max_nodes: int
    scanned: int = 0

    @property
    def exhausted(self) -> bool:
        return self.scanned >= self.max_nodes


@dataclass(frozen=True)
class NodeVisit:
    """A container node popped from the stack, with its resolved time context."""

    node: dict[str, Any] | list[Any]
    path: str | None
    depth: int
    # The node's own absolute-time field, if any.
    own_time_key: str | None
    # Raw time value in effect for this node: its own, else the inherited one.
    context_time: Any
    # context_time resolved to epoch milliseconds.
    base_time_ms: int | None
    # Element of an offset-path array already expanded by its parent.
    is_waypoint: bool

    @property
    def expands_offset_path(self) -> bool:
        return (
            isinstance(self.node, dict)
            and isinstance(self.node.get(OFFSET_PATH_KEY), list)
            and self.base_time_ms is not None
        )


@dataclass(frozen=True, slots=True)
class _Frame:
    node: Any
    inherited_time: Any
    path: str | None
    depth: int
    is_waypoint: bool = False
    holds_waypoints: bool = False


def walk_tree(
    root: Any,
    budget: ScanBudget,
    *,
    track_paths: bool = False,
    checkpoint_every: int = 0,
    on_checkpoint: Callable[[int], None] | None = None,
) -> Iterator[NodeVisit]:
    """
    Yield every object and array node reachable from root, depth first in document order.

    Stops once the budget is exhausted; that is a partial walk, not an error.
    Structural paths are only built when track_paths is set.
    """
    stack = [_Frame(root, None, ROOT_PATH if track_paths else None, 0)]
    while stack and not budget.exhausted:
        frame = stack.pop()
        budget.scanned += 1
        if on_checkpoint is not None and checkpoint_every and budget.scanned % checkpoint_every == 0:
            on_checkpoint(budget.scanned)

        node = frame.node
        if isinstance(node, list):
            yield NodeVisit(
                node=node,
                path=frame.path,
                depth=frame.depth,
                own_time_key=None,
                context_time=frame.inherited_time,
                base_time_ms=resolve_timestamp_ms(frame.inherited_time),
                is_waypoint=frame.is_waypoint,
            )
            for i in range(len(node) - 1, -1, -1):
                stack.append(
                    _Frame(
                        node[i],
                        frame.inherited_time,
                        index_path(frame.path, i) if track_paths else None,
                        frame.depth + 1,
                        is_waypoint=frame.holds_waypoints,
                    )
                )
        elif isinstance(node, dict):
            own_time = find_own_time(node)
            context_time = own_time[1] if own_time else frame.inherited_time
            visit = NodeVisit(
                node=node,
                path=frame.path,
                depth=frame.depth,
                own_time_key=own_time[0] if own_time else None,
                context_time=context_time,
                base_time_ms=resolve_timestamp_ms(context_time),
                is_waypoint=frame.is_waypoint,
            )
            yield visit
            expanded = visit.expands_offset_path
            keys = list(node)
            for key in reversed(keys):
                value = node[key]
                if isinstance(value, (dict, list)):
                    stack.append(
                        _Frame(
                            value,
                            context_time,
                            child_path(frame.path, key) if track_paths else None,
                            frame.depth + 1,
                            holds_waypoints=expanded and key == OFFSET_PATH_KEY,
                        )
                    )

    if stack:
        logger.info(f"Node-visit ceiling reached; walk is partial {budget.scanned=} {len(stack)=}")
