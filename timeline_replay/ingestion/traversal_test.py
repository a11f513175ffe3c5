"""Tests for the budgeted tree walk."""

from timeline_replay.ingestion.traversal import ScanBudget, walk_tree


def test_walk_order_and_paths() -> None:
    root = {"a": [{"b": 1}, {"c.d": {"e": []}}], "z": {}}
    visits = list(walk_tree(root, ScanBudget(max_nodes=100), track_paths=True))
    assert [visit.path for visit in visits] == [
        "$",
        "$.a",
        "$.a[0]",
        "$.a[1]",
        "$.a[1].c\\.d",
        "$.a[1].c\\.d.e",
        "$.z",
    ]
    assert [visit.depth for visit in visits] == [0, 1, 2, 2, 3, 4, 1]


def test_paths_not_built_by_default() -> None:
    visits = list(walk_tree({"a": {}}, ScanBudget(max_nodes=100)))
    assert [visit.path for visit in visits] == [None, None]


def test_time_inherited_by_descendants_not_siblings() -> None:
    root = {
        "segments": [
            {"startTime": "2024-01-01T00:00:00Z", "inner": {"deeper": {}}},
            {"other": {}},
        ]
    }
    visits = {
        visit.path: visit for visit in walk_tree(root, ScanBudget(max_nodes=100), track_paths=True)
    }
    assert visits["$.segments[0]"].own_time_key == "startTime"
    assert visits["$.segments[0].inner"].own_time_key is None
    assert visits["$.segments[0].inner.deeper"].base_time_ms == 1704067200000
    assert visits["$.segments[1]"].base_time_ms is None
    assert visits["$.segments[1].other"].context_time is None


def test_nearest_time_wins() -> None:
    root = {
        "startTime": "2024-01-01T00:00:00Z",
        "child": {"timestamp": "2024-01-02T00:00:00Z", "leaf": {}},
    }
    visits = {
        visit.path: visit for visit in walk_tree(root, ScanBudget(max_nodes=100), track_paths=True)
    }
    assert visits["$.child.leaf"].base_time_ms == 1704153600000


def test_offset_path_elements_are_waypoints_only_when_expanded() -> None:
    expanded = {"startTime": "2024-01-01T00:00:00Z", "timelinePath": [{"point": "geo:1,2"}]}
    unexpanded = {"timelinePath": [{"point": "geo:1,2"}]}

    visits = list(walk_tree(expanded, ScanBudget(max_nodes=100), track_paths=True))
    assert visits[0].expands_offset_path
    assert [visit.is_waypoint for visit in visits] == [False, False, True]

    visits = list(walk_tree(unexpanded, ScanBudget(max_nodes=100), track_paths=True))
    assert not visits[0].expands_offset_path
    assert [visit.is_waypoint for visit in visits] == [False, False, False]


def test_budget_stops_walk() -> None:
    root = [{"x": i} for i in range(1000)]
    budget = ScanBudget(max_nodes=10)
    visits = list(walk_tree(root, budget))
    assert budget.scanned == 10
    assert budget.exhausted
    assert len(visits) == 10


def test_scalar_array_elements_count_toward_budget() -> None:
    budget = ScanBudget(max_nodes=100)
    visits = list(walk_tree([1, 2, 3], budget))
    assert len(visits) == 1
    assert budget.scanned == 4
    assert not budget.exhausted


def test_checkpoints() -> None:
    seen: list[int] = []
    budget = ScanBudget(max_nodes=1000)
    list(walk_tree([{}] * 25, budget, checkpoint_every=10, on_checkpoint=seen.append))
    assert seen == [10, 20]


def test_deep_nesting_does_not_recurse() -> None:
    root: dict = {}
    current = root
    for _ in range(5000):
        current["next"] = {}
        current = current["next"]
    visits = list(walk_tree(root, ScanBudget(max_nodes=10_000)))
    assert len(visits) == 5001
    assert visits[-1].depth == 5000


def test_input_not_modified() -> None:
    root = {"startTime": "2024-01-01T00:00:00Z", "timelinePath": [{"point": "geo:1,2"}]}
    before = repr(root)
    list(walk_tree(root, ScanBudget(max_nodes=100), track_paths=True))
    assert repr(root) == before
