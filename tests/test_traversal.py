# FILE: tests/test_traversal.py
"""
Tests for recursive_search/traversal.py
Breadth-first order, path construction, match behaviors, cache interaction.
"""

from unittest.mock import patch

import pytest

from recursive_search.cache import CacheStore
from recursive_search.errors import CacheWriteError, RemoteListingError
from recursive_search.models import MatchBehavior
from recursive_search.traversal import TraversalEngine, TraversalState


TREE = {
    "alpha": {
        "target": None,
        "deep": {"target": {"leaf.txt": None}},
    },
    "beta": {"target": None},
    "target": None,
}


def _paths(matches):
    return [m.full_path for m in matches]


# =============================================================================
# State machine
# =============================================================================

class TestTraversalState:

    def test_end_stops_scope_and_run(self):
        state = TraversalState()
        state.record_match(MatchBehavior.END)
        assert (state.continue_scope, state.continue_run) == (False, False)

    def test_scope_end_stops_run_only(self):
        state = TraversalState()
        state.record_match(MatchBehavior.SCOPE_END)
        assert (state.continue_scope, state.continue_run) == (True, False)

    def test_continue_changes_nothing(self):
        state = TraversalState()
        state.record_match(MatchBehavior.CONTINUE)
        state.record_match(MatchBehavior.CONTINUE)
        assert (state.continue_scope, state.continue_run) == (True, True)
        assert state.total_matches == 2

    def test_reset_scope_keeps_run_decision(self):
        state = TraversalState()
        state.record_match(MatchBehavior.END)
        state.reset_scope()
        assert state.continue_scope is True
        assert state.continue_run is False
        assert state.scope_matches == 0
        assert state.total_matches == 1


# =============================================================================
# Traversal
# =============================================================================

class TestBreadthFirst:

    def test_matches_in_breadth_first_order(self, make_adapter, live_scope):
        adapter = make_adapter({live_scope: TREE})
        engine = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE)

        matches = list(engine.search_scope(live_scope))

        assert _paths(matches) == ["/target", "/alpha/target", "/beta/target", "/alpha/deep/target"]
        assert all(m.share_name == "share" and m.snapshot_time is None for m in matches)

    def test_directories_listed_level_by_level(self, make_adapter, live_scope):
        adapter = make_adapter({live_scope: TREE})
        list(TraversalEngine(adapter, "nothing", MatchBehavior.CONTINUE).search_scope(live_scope))

        assert adapter.paths_listed(live_scope) == [
            "/", "/alpha/", "/beta/", "/alpha/deep/", "/alpha/deep/target/",
        ]

    def test_path_construction_from_root(self, make_adapter, live_scope):
        adapter = make_adapter({live_scope: {"foo": {"bar": None}}})
        engine = TraversalEngine(adapter, "bar", MatchBehavior.CONTINUE)

        assert _paths(engine.search_scope(live_scope)) == ["/foo/bar"]
        assert adapter.paths_listed(live_scope) == ["/", "/foo/"]

    def test_matched_directory_is_still_searched(self, make_adapter, live_scope):
        adapter = make_adapter({live_scope: {"target": {"target": None}}})
        engine = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE)

        assert _paths(engine.search_scope(live_scope)) == ["/target", "/target/target"]

    def test_name_match_is_exact(self, make_adapter, live_scope):
        adapter = make_adapter({live_scope: {"Target": None, "target.txt": None, "xtarget": None}})
        assert list(TraversalEngine(adapter, "target", MatchBehavior.CONTINUE).search_scope(live_scope)) == []

    def test_snapshot_matches_carry_snapshot_time(self, make_adapter, snapshots):
        adapter = make_adapter({snapshots[0]: {"target": None}})
        [match] = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE).search_scope(snapshots[0])
        assert match.snapshot_time == snapshots[0].snapshot_time


class TestMatchBehavior:

    def test_end_stops_at_first_match(self, make_adapter, live_scope):
        tree = {
            "a": {"target": None, "other": None, "sub": {"target": None}},
            "b": {"target": None},
        }
        adapter = make_adapter({live_scope: tree})
        engine = TraversalEngine(adapter, "target", MatchBehavior.END)

        assert _paths(engine.search_scope(live_scope)) == ["/a/target"]
        assert adapter.paths_listed(live_scope) == ["/", "/a/"]
        assert engine.state.continue_run is False

    def test_scope_end_drains_current_scope(self, make_adapter, live_scope):
        adapter = make_adapter({live_scope: TREE})
        engine = TraversalEngine(adapter, "target", MatchBehavior.SCOPE_END)

        assert len(list(engine.search_scope(live_scope))) == 4
        assert engine.state.continue_run is False

    def test_no_match_keeps_run_going(self, make_adapter, live_scope):
        adapter = make_adapter({live_scope: TREE})
        engine = TraversalEngine(adapter, "missing", MatchBehavior.END)

        assert list(engine.search_scope(live_scope)) == []
        assert engine.state.continue_run is True


class TestCacheInteraction:

    def test_listing_is_cached_before_matching(self, make_adapter, live_scope, cache_path):
        adapter = make_adapter({live_scope: {"target": None, "after": None, "dir": {"x": None}}})
        with CacheStore(cache_path) as cache:
            engine = TraversalEngine(adapter, "target", MatchBehavior.END, cache=cache)
            list(engine.search_scope(live_scope))

            assert [e.entry_name for e in cache.cached_children(live_scope, "/")] == ["target", "after", "dir"]

    def test_partial_cache_survives_remote_failure(self, make_adapter, live_scope, cache_path):
        adapter = make_adapter({live_scope: TREE}, failing_paths={"/beta/"})
        with CacheStore(cache_path) as cache:
            engine = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE, cache=cache)
            found = []
            with pytest.raises(RemoteListingError) as exc_info:
                for match in engine.search_scope(live_scope):
                    found.append(match.full_path)

            assert exc_info.value.path == "/beta/"
            assert found == ["/target", "/alpha/target"]
            # root (3) + alpha (2)
            assert cache.count_entries(live_scope) == 5

    def test_live_scope_is_always_listed_remotely(self, make_adapter, live_scope, cache_path):
        adapter = make_adapter({live_scope: TREE})
        with CacheStore(cache_path) as cache:
            for _ in range(2):
                engine = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE, cache=cache)
                list(engine.search_scope(live_scope))

        assert adapter.paths_listed(live_scope).count("/") == 2

    def test_snapshot_listing_reused_from_cache(self, make_adapter, snapshots, cache_path):
        snapshot = snapshots[0]
        adapter = make_adapter({snapshot: {"a": {"target": None}, "target": None}})
        with CacheStore(cache_path) as cache:
            first = list(TraversalEngine(adapter, "target", MatchBehavior.CONTINUE, cache=cache).search_scope(snapshot))
            calls_after_first = len(adapter.calls)

            engine = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE, cache=cache)
            second = list(engine.search_scope(snapshot))

        assert first == second
        assert len(adapter.calls) == calls_after_first
        assert engine.state.directories_listed == 0

    def test_uncached_snapshot_looks_up_cache_once(self, make_adapter, snapshots, cache_path):
        snapshot = snapshots[0]
        adapter = make_adapter({snapshot: TREE})
        with CacheStore(cache_path) as cache:
            with patch.object(cache, "cached_children", wraps=cache.cached_children) as lookup:
                engine = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE, cache=cache)
                list(engine.search_scope(snapshot))

                assert lookup.call_count == 1
                lookup.assert_called_once_with(snapshot, "/")

                # Second run is served from the cache level by level
                engine = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE, cache=cache)
                list(engine.search_scope(snapshot))

        assert engine.state.directories_listed == 0
        assert adapter.paths_listed(snapshot).count("/") == 1

    def test_snapshot_cache_reuse_can_be_disabled(self, make_adapter, snapshots, cache_path):
        snapshot = snapshots[0]
        adapter = make_adapter({snapshot: {"target": None}})
        with CacheStore(cache_path) as cache:
            for _ in range(2):
                engine = TraversalEngine(
                    adapter, "target", MatchBehavior.CONTINUE, cache=cache, reuse_snapshot_cache=False,
                )
                list(engine.search_scope(snapshot))

        assert adapter.paths_listed(snapshot) == ["/", "/"]

    def test_cache_write_failure_is_tolerated_by_default(self, make_adapter, live_scope, cache_path):
        adapter = make_adapter({live_scope: {"target": None}})
        with CacheStore(cache_path) as cache:
            failure = CacheWriteError(str(cache_path), "INSERT", cause=RuntimeError("disk full"))
            with patch.object(cache, "record_entries", side_effect=failure):
                engine = TraversalEngine(adapter, "target", MatchBehavior.CONTINUE, cache=cache)
                assert _paths(engine.search_scope(live_scope)) == ["/target"]

    def test_cache_write_failure_is_fatal_when_strict(self, make_adapter, live_scope, cache_path):
        adapter = make_adapter({live_scope: {"target": None}})
        with CacheStore(cache_path) as cache:
            failure = CacheWriteError(str(cache_path), "INSERT", cause=RuntimeError("disk full"))
            with patch.object(cache, "record_entries", side_effect=failure):
                engine = TraversalEngine(
                    adapter, "target", MatchBehavior.CONTINUE, cache=cache, strict_cache_writes=True,
                )
                with pytest.raises(CacheWriteError):
                    list(engine.search_scope(live_scope))
