"""
Pull-based lazy collection.

A LazyCollection keeps a source and a queue of pending steps. Nothing runs
until a terminal operation iterates it; each pull then moves exactly one
entry through the whole pipeline. Sources may be infinite as long as the
pipeline is bounded (take, take_while, take_until) before it is drained.
"""

import logging
from collections.abc import Iterable, Mapping
from itertools import islice

from .collection import MISSING, Collection
from .errors import EmptyCollectionError, NotCollapsibleError, NotComparableError, NotFoundError
from .models import ChunkParams, PageParams, validate_params
from .utils import (
    adapt_callback,
    collapsible_values,
    get_settings,
    is_collapsible,
    require_number,
    value_retriever,
)

logger = logging.getLogger(__name__)


class Cursor:
    """
    Explicit pull interface over a lazy pipeline.

    next() returns (entry, True) while entries remain and (None, False)
    once the pipeline is exhausted. Only one entry is ever in flight.
    """

    def __init__(self, entries):
        self._entries = iter(entries)
        self.pulled = 0
        self.exhausted = False

    def next(self):
        if self.exhausted:
            return None, False
        try:
            entry = next(self._entries)
        except StopIteration:
            self.exhausted = True
            return None, False
        self.pulled += 1
        return entry, True

    def __iter__(self):
        return self

    def __next__(self):
        entry, has_more = self.next()
        if not has_more:
            raise StopIteration
        return entry


# --------- pipeline steps ----------
# Each step takes the upstream entry iterator and yields (key, value) entries.

def _map(entries, fn):
    for k, v in entries:
        yield k, fn(v, k)


def _map_spread(entries, fn):
    for k, v in entries:
        if not is_collapsible(v):
            raise NotCollapsibleError(k, v)
        yield k, fn(*collapsible_values(v))


def _filter(entries, pred):
    for k, v in entries:
        if pred(v, k):
            yield k, v


def _reject(entries, pred):
    for k, v in entries:
        if not pred(v, k):
            yield k, v


def _flat_map(entries, fn):
    index = 0
    for k, v in entries:
        inner = fn(v, k)
        if not is_collapsible(inner):
            raise NotCollapsibleError(k, inner)
        for x in collapsible_values(inner):
            yield index, x
            index += 1


def _take(entries, n):
    if n <= 0:
        return
    taken = 0
    for entry in entries:
        yield entry
        taken += 1
        if taken >= n:
            return


def _take_while(entries, pred):
    for k, v in entries:
        if not pred(v, k):
            return
        yield k, v


def _skip(entries, n):
    skipped = 0
    for entry in entries:
        if skipped < n:
            skipped += 1
            continue
        yield entry


def _skip_while(entries, pred):
    skipping = True
    for k, v in entries:
        if skipping and pred(v, k):
            continue
        skipping = False
        yield k, v


def _chunk(entries, size):
    bucket = []
    index = 0
    for entry in entries:
        bucket.append(entry)
        if len(bucket) == size:
            yield index, Collection.from_pairs(bucket)
            index += 1
            bucket = []
    if bucket:
        yield index, Collection.from_pairs(bucket)


def _values(entries, _):
    for index, (_, v) in enumerate(entries):
        yield index, v


def _keys(entries, _):
    for index, (k, _) in enumerate(entries):
        yield index, k


def _concat(entries, other):
    index = 0
    for _, v in entries:
        yield index, v
        index += 1
    for v in _plain_values(other):
        yield index, v
        index += 1


def _zip(entries, other):
    # pull other first; upstream is never read past the last pair
    for index, (paired, (_, v)) in enumerate(zip(_plain_values(other), entries)):
        yield index, (v, paired)


def _unique(entries, retrieve):
    seen_hashable = set()
    seen_other = []
    for k, v in entries:
        marker = retrieve(v, k)
        try:
            if marker in seen_hashable:
                continue
            seen_hashable.add(marker)
        except TypeError:
            if marker in seen_other:
                continue
            seen_other.append(marker)
        yield k, v


def _tap_each(entries, fn):
    for k, v in entries:
        fn(v, k)
        yield k, v


_STEPS = {
    "map": _map,
    "map_spread": _map_spread,
    "filter": _filter,
    "reject": _reject,
    "flat_map": _flat_map,
    "take": _take,
    "take_while": _take_while,
    "skip": _skip,
    "skip_while": _skip_while,
    "chunk": _chunk,
    "values": _values,
    "keys": _keys,
    "concat": _concat,
    "zip": _zip,
    "unique": _unique,
    "tap_each": _tap_each,
}


def _plain_values(other):
    """Values of another collection or iterable, pulled lazily where possible"""
    if isinstance(other, (Collection, LazyCollection)):
        return (v for _, v in other)
    if isinstance(other, Mapping):
        return iter(other.values())
    return iter(other)


class LazyCollection:
    """
    A chainable, lazy collection of (key, value) entries.

    source is a zero-argument factory called afresh for every independent
    iteration, or a re-iterable (list, range, dict, Collection). A factory
    yields plain values (auto-indexed) unless keyed=True, in which case it
    yields (key, value) pairs. Optionally memoizes realized entries.
    """
    def __init__(self, source=None, keyed=False, ops=None, cache_enabled=None):
        self._source = () if source is None else source
        self._keyed = keyed
        self._ops = ops or []          # sequence of ("step_name", argument)
        if cache_enabled is None:
            cache_enabled = get_settings().lazy_cache_default
        self._cache_enabled = cache_enabled
        self._cache = []               # realized entries (post-ops)
        self._live = None              # shared pipeline feeding the cache
        self._exhausted = False        # whether the cached pipeline ran dry

    @classmethod
    def make(cls, source=None, keyed=False):
        return cls(source, keyed=keyed)

    @classmethod
    def times(cls, number, fn=None):
        """fn(1)..fn(number), or 1..number without fn"""
        fn = fn or (lambda i: i)

        def factory():
            for i in range(1, number + 1):
                yield fn(i)
        return cls(factory)

    @classmethod
    def range(cls, start, end):
        """Integers from start to end inclusive"""
        def factory():
            yield from range(start, end + 1)
        return cls(factory)

    @classmethod
    def count_up(cls, start=0):
        """Infinite counting source: start, start + 1, ..."""
        def factory():
            value = start
            while True:
                yield value
                value += 1
        return cls(factory)

    # --------- chainable operators (lazy) ----------
    def map(self, fn):
        return self._with_op(("map", adapt_callback(fn)))

    def map_into(self, ctor):
        return self._with_op(("map", lambda v, k: ctor(v)))

    def map_spread(self, fn):
        return self._with_op(("map_spread", fn))

    def filter(self, pred=None):
        pred = adapt_callback(pred) if pred else (lambda v, k: v)
        return self._with_op(("filter", pred))

    def reject(self, pred):
        return self._with_op(("reject", adapt_callback(pred)))

    def flat_map(self, fn):
        return self._with_op(("flat_map", adapt_callback(fn)))

    def collapse(self):
        return self._with_op(("flat_map", lambda v, k: v))

    def take(self, n):
        """Stop pulling from upstream once n entries have been produced."""
        return self._with_op(("take", int(n)))

    def take_while(self, pred):
        return self._with_op(("take_while", adapt_callback(pred)))

    def take_until(self, pred):
        pred = adapt_callback(pred)
        return self._with_op(("take_while", lambda v, k: not pred(v, k)))

    def skip(self, n):
        return self._with_op(("skip", max(int(n), 0)))

    def skip_while(self, pred):
        return self._with_op(("skip_while", adapt_callback(pred)))

    def skip_until(self, pred):
        pred = adapt_callback(pred)
        return self._with_op(("skip_while", lambda v, k: not pred(v, k)))

    def chunk(self, size):
        params = validate_params(ChunkParams, size=size)
        return self._with_op(("chunk", params.size))

    def values(self):
        return self._with_op(("values", None))

    def keys(self):
        return self._with_op(("keys", None))

    def concat(self, other):
        return self._with_op(("concat", other))

    def zip(self, other):
        return self._with_op(("zip", other))

    def unique(self, selector=None):
        return self._with_op(("unique", value_retriever(selector)))

    def tap_each(self, fn):
        """Call fn(value, key) as each entry passes through."""
        return self._with_op(("tap_each", adapt_callback(fn)))

    def for_page(self, page, per_page):
        """Entries of a 1-indexed page"""
        params = validate_params(PageParams, page=page, per_page=per_page)
        return self.skip(params.offset).take(params.per_page)

    def paginate(self, per_page):
        """Iterator of successive pages as Collections, in a single pass"""
        params = validate_params(PageParams, per_page=per_page)
        return self._pages(params.per_page)

    def _pages(self, per_page):
        for page_number, (_, page) in enumerate(self.chunk(per_page), start=1):
            logger.debug(f"Yielding page {page_number} with {len(page)} entries")
            yield page

    def cache(self, enabled=True):
        c = self._clone()
        c._cache_enabled = enabled
        return c

    def remember(self):
        """Memoize realized entries so later iterations reuse them."""
        return self.cache(True)

    # --------- deferred materialization (bounded sequences only) ----------
    def sort(self, comparator=None):
        return self._deferred(lambda c: c.sort(comparator))

    def sort_desc(self, comparator=None):
        return self._deferred(lambda c: c.sort_desc(comparator))

    def sort_by(self, selector, descending=False):
        return self._deferred(lambda c: c.sort_by(selector, descending))

    def reverse(self):
        return self._deferred(lambda c: c.reverse())

    # --------- forcing evaluation ----------
    def collect(self):
        """Drain into a Collection. Never returns for an unbounded pipeline."""
        collection = Collection.from_pairs(self)
        logger.debug(f"Materialized {len(collection)} entries from {self!r}")
        return collection

    def all(self):
        return self.collect().all()

    def to_list(self):
        return [v for _, v in self]

    def cursor(self):
        return Cursor(self)

    def group_by(self, selector):
        return self.collect().group_by(selector)

    def map_to_groups(self, fn):
        return self.collect().map_to_groups(fn)

    def partition(self, pred):
        return self.collect().partition(pred)

    # --------- reducing operations (force evaluation) ----------
    def first(self, pred=None, default=MISSING):
        pred = adapt_callback(pred) if pred else None
        for k, v in self:
            if pred is None or pred(v, k):
                return v
        if default is not MISSING:
            return default
        raise NotFoundError("No entry matched" if pred else "Collection is empty")

    def last(self, pred=None, default=MISSING):
        pred = adapt_callback(pred) if pred else None
        found = MISSING
        for k, v in self:
            if pred is None or pred(v, k):
                found = v
        if found is not MISSING:
            return found
        if default is not MISSING:
            return default
        raise NotFoundError("No entry matched" if pred else "Collection is empty")

    def contains(self, needle):
        """Stops at the first match; callable needles are predicates, as in Collection.contains"""
        if callable(needle):
            pred = adapt_callback(needle)
            return any(pred(v, k) for k, v in self)
        return any(v == needle for _, v in self)

    def every(self, pred):
        pred = adapt_callback(pred)
        return all(pred(v, k) for k, v in self)

    def is_empty(self):
        for _ in self:
            return False
        return True

    def is_not_empty(self):
        return not self.is_empty()

    def count(self):
        count = 0
        for _ in self:
            count += 1
        return count

    def reduce(self, fn, initial=MISSING):
        fn = adapt_callback(fn, max_args=3)
        entries = iter(self)
        if initial is MISSING:
            try:
                _, carry = next(entries)
            except StopIteration:
                raise EmptyCollectionError("reduce without an initial value") from None
        else:
            carry = initial
        for k, v in entries:
            carry = fn(carry, v, k)
        return carry

    def sum(self, selector=None):
        retrieve = value_retriever(selector)
        total = 0
        for k, v in self:
            total += require_number("sum", retrieve(v, k))
        return total

    def avg(self, selector=None):
        retrieve = value_retriever(selector)
        total = 0
        count = 0
        for k, v in self:
            total += require_number("avg", retrieve(v, k))
            count += 1
        if count == 0:
            raise EmptyCollectionError("average")
        return total / count

    def min(self, selector=None):
        return self._extreme(min, "min", selector)

    def max(self, selector=None):
        return self._extreme(max, "max", selector)

    def median(self, selector=None):
        return self.collect().median(selector)

    def join(self, separator="", last_separator=None):
        return self.collect().join(separator, last_separator)

    def each(self, fn):
        fn = adapt_callback(fn)
        for k, v in self:
            if fn(v, k) is False:
                break
        return self

    # --------- iterator protocol ----------
    def __iter__(self):
        if self._cache_enabled:
            return self._cached_entries()
        return self._pipeline()

    def __repr__(self):
        steps = [op for op, _ in self._ops]
        return f"LazyCollection(steps={steps}, cached={self._cache_enabled})"

    # --------- helpers ----------
    def _source_entries(self):
        source = self._source
        if isinstance(source, (Collection, LazyCollection)):
            yield from source
            return
        if isinstance(source, Mapping):
            yield from source.items()
            return
        if callable(source) and not isinstance(source, Iterable):
            source = source()
        if self._keyed:
            for k, v in source:
                yield k, v
        else:
            yield from enumerate(source)

    def _pipeline(self):
        it = self._source_entries()
        for op, arg in self._ops:
            step = _STEPS.get(op)
            if step is None:
                raise ValueError(f"Unknown op: {op}")
            it = step(it, arg)
        return it

    def _cached_entries(self):
        index = 0
        while True:
            if index < len(self._cache):
                yield self._cache[index]
                index += 1
                continue
            if self._exhausted:
                return
            if self._live is None:
                # a fresh run resumes after the entries already cached
                self._live = islice(self._pipeline(), len(self._cache), None)
            try:
                entry = next(self._live)
            except StopIteration:
                self._exhausted = True
                self._live = None
                logger.debug(f"Cached pipeline exhausted after {len(self._cache)} entries")
                return
            except Exception:
                self._live = None
                logger.debug(f"Cached pipeline failed after {len(self._cache)} entries; next pull restarts it")
                raise
            self._cache.append(entry)

    def _extreme(self, pick, name, selector):
        retrieve = value_retriever(selector)
        marker = object()
        try:
            result = pick((retrieve(v, k) for k, v in self), default=marker)
        except TypeError as e:
            raise NotComparableError(f"{name}() values cannot be compared: {e}") from e
        if result is marker:
            raise EmptyCollectionError(f"take the {name} of")
        return result

    def _deferred(self, transform):
        """LazyCollection that materializes this one and applies transform on first pull"""
        upstream = self
        return LazyCollection(lambda: transform(upstream.collect()).items(), keyed=True,
                              cache_enabled=False)

    def _with_op(self, op_tuple):
        if self._cache_enabled:
            # later steps read through this collection's cache
            return LazyCollection(self, ops=[op_tuple])
        return LazyCollection(self._source, self._keyed, self._ops + [op_tuple], self._cache_enabled)

    def _clone(self):
        return LazyCollection(self._source, self._keyed, list(self._ops), self._cache_enabled)
