"""Tests for the dependency tracker."""

import pytest

from hotroute.reload import (
    DependencyEdge,
    DependencyTracker,
    EdgeKind,
    Full,
    GraphInconsistencyError,
    InfrastructureKind,
    Selective,
    Single,
    Skip,
    StrategyKind,
)

ROUTE_A = "/app/pages/api/a.py"
ROUTE_B = "/app/pages/api/b.py"
ROUTE_C = "/app/pages/api/c.py"
UTILS = "/app/lib/utils.py"
DB = "/app/lib/db.py"


def edges(*paths: str) -> list[DependencyEdge]:
    return [DependencyEdge(path) for path in paths]


class TestGraphMaintenance:
    """Tests for update_dependency_graph and friends."""

    def test_dependents_mirror_dependencies(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS, DB))

        assert tracker.get_dependents(UTILS) == {ROUTE_A}
        assert tracker.get_dependents(DB) == {ROUTE_A}
        assert {e.path for e in tracker.get_dependencies(ROUTE_A)} == {UTILS, DB}
        tracker.verify()

    def test_update_replaces_edges(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS, DB))
        tracker.update_dependency_graph(ROUTE_A, edges(DB))

        assert tracker.get_dependents(UTILS) == set()
        assert tracker.get_dependents(DB) == {ROUTE_A}
        tracker.verify()

    def test_update_is_idempotent(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))

        assert tracker.get_dependents(UTILS) == {ROUTE_A}
        assert tracker.stats()["totalDependencies"] == 1

    def test_paths_are_normalized(self, tracker: DependencyTracker):
        tracker.update_dependency_graph("/app/pages/api/../api/a.py", edges("/app/lib/./utils.py"))
        assert tracker.get_dependents(UTILS) == {ROUTE_A}

    def test_remove_file(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        tracker.remove_file(ROUTE_A)

        assert tracker.get_dependents(UTILS) == set()
        assert ROUTE_A not in tracker.files
        tracker.verify()

    def test_unknown_file_has_no_dependents(self, tracker: DependencyTracker):
        assert tracker.get_dependents("/nowhere.py") == set()
        assert tracker.get_dependencies("/nowhere.py") == set()

    def test_verify_detects_corruption(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        tracker._dependents[DB] = {ROUTE_A: None}

        with pytest.raises(GraphInconsistencyError) as exc_info:
            tracker.verify()
        assert len(exc_info.value.problems) == 1

    def test_stats_and_export(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(
            ROUTE_A,
            [DependencyEdge(UTILS), DependencyEdge("requests", is_external_package=True)],
        )
        tracker.update_dependency_graph(ROUTE_B, [DependencyEdge(UTILS, EdgeKind.DYNAMIC_IMPORT)])

        stats = tracker.stats()
        assert stats["totalFiles"] == 2
        assert stats["totalDependencies"] == 3
        assert stats["externalDependencies"] == 1
        assert stats["localDependencies"] == 2
        assert stats["averageDependenciesPerFile"] == 1.5

        exported = tracker.export_graph()
        assert exported[ROUTE_B] == [
            {"path": UTILS, "kind": "dynamic-import", "isExternalPackage": False}
        ]

    def test_clear(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        tracker.clear()
        assert tracker.files == []
        assert tracker.get_dependents(UTILS) == set()


class TestTransitiveDependents:
    """Tests for get_transitive_dependents."""

    def test_follows_chain(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        tracker.update_dependency_graph(UTILS, edges(DB))

        assert tracker.get_transitive_dependents(DB) == [UTILS, ROUTE_A]

    def test_max_depth(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        tracker.update_dependency_graph(UTILS, edges(DB))

        assert tracker.get_transitive_dependents(DB, max_depth=1) == [UTILS]

    def test_cycle_terminates(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(UTILS, edges(DB))
        tracker.update_dependency_graph(DB, edges(UTILS))

        assert tracker.get_transitive_dependents(UTILS) == [DB]


class TestReloadStrategy:
    """Tests for determine_reload_strategy."""

    def test_route_itself_is_single(self, tracker: DependencyTracker):
        strategy = tracker.determine_reload_strategy(ROUTE_A, {ROUTE_A})
        assert strategy == Single(ROUTE_A)
        assert strategy.kind is StrategyKind.SINGLE

    def test_unused_file_is_skip(self, tracker: DependencyTracker):
        strategy = tracker.determine_reload_strategy(UTILS, {ROUTE_A})
        assert isinstance(strategy, Skip)
        assert strategy.routes == ()

    def test_dependency_of_one_route_is_single(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        assert tracker.determine_reload_strategy(UTILS, {ROUTE_A, ROUTE_B}) == Single(ROUTE_A)

    def test_shared_dependency_is_selective_in_discovery_order(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_B, edges(UTILS))
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))

        strategy = tracker.determine_reload_strategy(UTILS, {ROUTE_A, ROUTE_B})

        assert isinstance(strategy, Selective)
        assert strategy.routes == (ROUTE_B, ROUTE_A)

    def test_transitive_dependents_reach_routes(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        tracker.update_dependency_graph(ROUTE_B, edges(UTILS))
        tracker.update_dependency_graph(UTILS, edges(DB))
        tracker.update_dependency_graph(ROUTE_C, edges(DB))

        strategy = tracker.determine_reload_strategy(DB, {ROUTE_A, ROUTE_B, ROUTE_C})

        assert strategy == Selective((ROUTE_C, ROUTE_A, ROUTE_B))

    def test_non_route_dependents_are_filtered(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(UTILS, edges(DB))
        assert isinstance(tracker.determine_reload_strategy(DB, {ROUTE_A}), Skip)

    def test_cycle_through_route(self, tracker: DependencyTracker):
        tracker.update_dependency_graph(ROUTE_A, edges(UTILS))
        tracker.update_dependency_graph(UTILS, edges(ROUTE_A))

        assert tracker.determine_reload_strategy(UTILS, {ROUTE_A}) == Single(ROUTE_A)

    def test_infrastructure_is_full(self, tracker: DependencyTracker):
        strategy = tracker.determine_reload_strategy(
            "/app/.env", {ROUTE_A}, InfrastructureKind.ENV
        )

        assert isinstance(strategy, Full)
        assert strategy.file_path == "/app/.env"
        assert not strategy.requires_restart

    def test_infrastructure_wins_over_route_membership(self, tracker: DependencyTracker):
        strategy = tracker.determine_reload_strategy(
            ROUTE_A, {ROUTE_A}, InfrastructureKind.CONFIG
        )
        assert isinstance(strategy, Full)
        assert strategy.requires_restart
