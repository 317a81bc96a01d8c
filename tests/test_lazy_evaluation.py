import pytest
import time
from collectkit import Collection, Cursor, LazyCollection


class TestLazyEvaluation:
    """Test core lazy evaluation functionality"""

    def test_lazy_collection(self):
        """Test taking from an infinite generator factory"""
        def factory():
            value = 0
            while True:
                yield value
                value += 1

        result = LazyCollection.make(factory).take(10)
        assert result.all() == [0, 1, 2, 3, 4, 5, 6, 7, 8, 9]

    def test_take_never_pulls_past_the_limit(self, counting_factory):
        """Test take stops requesting upstream values once satisfied"""
        result = LazyCollection(counting_factory).take(10).all()

        assert result == list(range(10)), f"Unexpected result: {result}"
        assert counting_factory.stats["produced"] == 10, (
            f"Expected exactly 10 pulls, got {counting_factory.stats['produced']}"
        )
        assert counting_factory.stats["invocations"] == 1

    def test_deferred_execution(self):
        """Test that operations are not executed immediately"""
        call_count = 0

        def track_calls(x):
            nonlocal call_count
            call_count += 1
            return x * 2

        lazy_col = LazyCollection(range(10)).map(track_calls)
        assert call_count == 0, "Operations should not execute during definition"

        result = lazy_col.take(3).to_list()
        assert call_count == 3, f"Expected exactly 3 calls, got {call_count}"
        assert result == [0, 2, 4], f"Unexpected result: {result}"

    def test_factory_not_invoked_until_iterated(self, counting_factory):
        """Test building a pipeline never calls the factory"""
        pipeline = LazyCollection(counting_factory).map(lambda x: x + 1).filter(lambda x: x % 2)
        assert counting_factory.stats["invocations"] == 0
        pipeline.take(2).all()
        assert counting_factory.stats["invocations"] == 1

    def test_lazy_chaining(self):
        """Test that chained operations remain lazy"""
        lazy_col = (
            LazyCollection(range(100))
            .map(lambda x: x * x)
            .filter(lambda x: x % 2 == 0)
            .skip(5)
            .take(10)
        )

        assert hasattr(lazy_col, '_ops'), "Should maintain operation queue"
        assert len(lazy_col._ops) == 4, "Should have pending operations"

        result = lazy_col.to_list()
        assert len(result) == 10, f"Expected 10 items, got {len(result)}"

    def test_multiple_consumption(self, counting_factory):
        """Test each consumer gets a fresh run of the factory"""
        lazy_col = LazyCollection(counting_factory).map(lambda x: x * 2).take(5)

        result1 = lazy_col.to_list()
        result2 = lazy_col.to_list()

        assert result1 == result2 == [0, 2, 4, 6, 8], f"Unexpected results: {result1}, {result2}"
        assert counting_factory.stats["invocations"] == 2

    def test_keyed_factory(self):
        """Test factories yielding explicit (key, value) pairs"""
        def factory():
            yield "akmal", 100
            yield "budi", 90

        lazy_col = LazyCollection(factory, keyed=True)
        assert lazy_col.all() == {"akmal": 100, "budi": 90}
        assert lazy_col.filter(lambda v, k: k.startswith("a")).all() == {"akmal": 100}

    def test_sources(self):
        """Test lists, mappings and collections as sources"""
        assert LazyCollection([1, 2]).all() == [1, 2]
        assert LazyCollection({"a": 1}).all() == {"a": 1}
        assert LazyCollection(Collection({"b": 2})).all() == {"b": 2}
        assert LazyCollection().all() == []
        assert Collection([1, 2]).lazy().map(lambda x: x * 3).all() == [3, 6]

    def test_collect_returns_collection(self):
        """Test materializing into an eager collection"""
        collection = LazyCollection.range(1, 5).collect()
        assert isinstance(collection, Collection)
        assert collection.all() == [1, 2, 3, 4, 5]
        assert Collection(LazyCollection.times(3)).all() == [1, 2, 3]

    def test_lazy_evaluation_with_side_effects(self):
        """Test that side effects only occur when operations are executed"""
        side_effects = []

        def side_effect_map(x):
            side_effects.append(f"processed {x}")
            return x * 2

        lazy_col = LazyCollection([1, 2, 3, 4, 5]).map(side_effect_map)
        assert len(side_effects) == 0, "Side effects should not occur during definition"

        result = lazy_col.take(2).to_list()
        assert side_effects == ["processed 1", "processed 2"], f"Unexpected side effects: {side_effects}"
        assert result == [2, 4], f"Unexpected result: {result}"

    def test_tap_each(self):
        """Test tap_each observes entries as they pass"""
        seen = []
        result = LazyCollection.count_up().tap_each(lambda v: seen.append(v)).take(3).all()
        assert result == [0, 1, 2]
        assert seen == [0, 1, 2]

    def test_errors_surface_only_when_touched(self):
        """Test a failing element only raises when a terminal operation reaches it"""
        def failing(x):
            if x == 3:
                raise ValueError("bad element")
            return x

        pipeline = LazyCollection(range(10)).map(failing)
        assert pipeline.take(3).all() == [0, 1, 2]
        with pytest.raises(ValueError, match="bad element"):
            pipeline.all()

    def test_lazy_evaluation_performance(self):
        """Test that lazy evaluation improves performance for small outputs"""
        start_time = time.perf_counter()
        result = (
            LazyCollection.count_up()
            .map(lambda x: x * x)
            .filter(lambda x: x % 1000 == 0)
            .take(5)
            .to_list()
        )
        lazy_time = time.perf_counter() - start_time

        assert result == [0, 10000, 40000, 90000, 160000], f"Unexpected result: {result}"
        assert lazy_time < 1.0, f"Lazy evaluation took too long: {lazy_time:.2f}s"


class TestCursor:
    """Test the explicit pull interface"""

    def test_cursor_pulls_one_entry_at_a_time(self, counting_factory):
        """Test next() advances exactly one element"""
        cursor = LazyCollection(counting_factory).map(lambda x: x * 10).cursor()
        assert isinstance(cursor, Cursor)
        assert counting_factory.stats["produced"] == 0

        assert cursor.next() == ((0, 0), True)
        assert cursor.next() == ((1, 10), True)
        assert cursor.pulled == 2
        assert counting_factory.stats["produced"] == 2

    def test_cursor_reports_exhaustion(self):
        """Test has_more turns False once the pipeline is drained"""
        cursor = LazyCollection(["a"]).cursor()
        assert cursor.next() == ((0, "a"), True)
        assert cursor.next() == (None, False)
        assert cursor.next() == (None, False)
        assert cursor.exhausted

    def test_cursor_is_iterable(self):
        """Test a cursor can be drained with a for loop"""
        assert list(LazyCollection([1, 2]).cursor()) == [(0, 1), (1, 2)]


class TestRemember:
    """Test memoization of realized entries"""

    def test_remember_reuses_results(self):
        """Test the second pass does not recompute"""
        calls = []
        remembered = LazyCollection(range(5)).map(lambda x: calls.append(x) or x * 2).remember()

        assert remembered.to_list() == [0, 2, 4, 6, 8]
        assert remembered.to_list() == [0, 2, 4, 6, 8]
        assert calls == [0, 1, 2, 3, 4], f"Values were recomputed: {calls}"

    def test_remember_shares_partial_progress(self, counting_factory):
        """Test consumers share one upstream run"""
        remembered = LazyCollection(counting_factory).remember()

        assert remembered.take(3).all() == [0, 1, 2]
        assert remembered.take(5).all() == [0, 1, 2, 3, 4]
        assert counting_factory.stats["invocations"] == 1
        assert counting_factory.stats["produced"] == 5

    def test_remember_restarts_after_a_failed_pull(self):
        """Test a failure mid-pipeline does not leave a truncated cache behind"""
        failures = []

        def flaky(x):
            if x == 2 and not failures:
                failures.append(x)
                raise RuntimeError("transient failure")
            return x

        remembered = LazyCollection([0, 1, 2, 3, 4]).map(flaky).remember()
        with pytest.raises(RuntimeError):
            remembered.to_list()
        assert remembered.to_list() == [0, 1, 2, 3, 4], "Second pass should resume, not stop at the failure"
        assert remembered.count() == 5

    def test_cache_can_be_disabled(self):
        """Test cache(False) recomputes every time"""
        calls = []
        pipeline = LazyCollection(range(2)).map(lambda x: calls.append(x) or x).cache(False)
        pipeline.to_list()
        pipeline.to_list()
        assert calls == [0, 1, 0, 1]
