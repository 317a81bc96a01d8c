"""
Eager, ordered key/value collection with a chainable functional API.

Entries live in an insertion-ordered dict: keys are unique, re-inserting a
key overwrites its value in place, and iteration yields (key, value) pairs
in stored order. Every operation except push() and pop() returns a new
Collection (or a scalar) and leaves the receiver untouched.
"""

import functools
import logging
import random
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .errors import (
    EmptyCollectionError,
    InvalidArgumentError,
    LengthMismatchError,
    NotCollapsibleError,
    NotComparableError,
    NotFoundError,
)
from .models import ChunkParams, PageParams, RandomParams, SliceParams, validate_params
from .utils import (
    adapt_callback,
    collapsible_values,
    get_settings,
    is_collapsible,
    require_number,
    value_retriever,
)

logger = logging.getLogger(__name__)

MISSING = object()

_random_source: Optional[random.Random] = None


def default_random() -> random.Random:
    """Random source seeded from settings, created on first use"""
    global _random_source
    if _random_source is None:
        _random_source = random.Random(get_settings().random_seed)
    return _random_source


def reset_random():
    global _random_source
    _random_source = None


def _is_index(key) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)


def _values_of(other) -> List[Any]:
    """Plain values of another collection, mapping or iterable"""
    if isinstance(other, Collection):
        return other.to_list()
    if isinstance(other, Mapping):
        return list(other.values())
    from .lazy import LazyCollection
    if isinstance(other, LazyCollection):
        return other.to_list()
    return list(other)


def _group_pair(result) -> Tuple[Any, Any]:
    """Accept (group_key, value) tuples or single-entry mappings"""
    if isinstance(result, Mapping) and len(result) == 1:
        return next(iter(result.items()))
    if isinstance(result, (tuple, list)) and len(result) == 2:
        return result[0], result[1]
    raise InvalidArgumentError(
        f"Group mapper must return a (key, value) pair or a single-entry mapping, got {result!r}"
    )


class Collection:
    """
    Ordered collection of (key, value) entries.

    Values given positionally are indexed 0..n-1; a mapping supplies its
    own keys.
    """

    def __init__(self, items=None):
        self._items: Dict[Any, Any] = {}
        if items is None:
            return
        from .lazy import LazyCollection
        if isinstance(items, Collection):
            self._items = dict(items._items)
        elif isinstance(items, Mapping):
            self._items = dict(items)
        elif isinstance(items, LazyCollection):
            self._items = dict(items)
        elif isinstance(items, (str, bytes)) or not isinstance(items, Iterable):
            self._items = {0: items}
        else:
            self._items = dict(enumerate(items))

    # --------- construction ----------
    @classmethod
    def of(cls, items=None) -> "Collection":
        return cls(items)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[Any, Any]]) -> "Collection":
        """Build from explicit (key, value) pairs; later duplicates overwrite earlier ones."""
        return cls._from_entries(pairs)

    @classmethod
    def times(cls, number: int, fn: Optional[Callable[[int], Any]] = None) -> "Collection":
        """Collection of fn(1)..fn(number), or 1..number without fn"""
        fn = fn or (lambda i: i)
        return cls([fn(i) for i in range(1, max(number, 0) + 1)])

    @classmethod
    def _from_entries(cls, entries: Iterable[Tuple[Any, Any]]) -> "Collection":
        c = cls()
        c._items = dict(entries)
        return c

    # --------- snapshots ----------
    def all(self):
        """
        Snapshot of the entries.

        A list of values when the keys are exactly 0..n-1 in order, otherwise
        a dict in insertion order, so explicit keys (group keys, combined
        keys, keys kept by filter, sort or slice) are never lost. Either way
        the caller gets a fresh copy; to_list() always drops the keys.
        """
        if all(_is_index(key) and key == position for position, key in enumerate(self._items)):
            return list(self._items.values())
        return dict(self._items)

    def to_list(self) -> List[Any]:
        return list(self._items.values())

    def to_dict(self) -> Dict[Any, Any]:
        return dict(self._items)

    def items(self) -> List[Tuple[Any, Any]]:
        return list(self._items.items())

    def keys(self) -> "Collection":
        return Collection(list(self._items.keys()))

    def values(self) -> "Collection":
        return Collection(list(self._items.values()))

    def lazy(self):
        """LazyCollection over a snapshot of this collection"""
        from .lazy import LazyCollection
        return LazyCollection(Collection(self))

    # --------- mutation ----------
    def push(self, *values) -> "Collection":
        """Append values under the next free integer keys (mutates)."""
        next_key = max((key for key in self._items if _is_index(key)), default=-1) + 1
        for value in values:
            self._items[next_key] = value
            next_key += 1
        return self

    def pop(self):
        """Remove and return the last value (mutates)."""
        if not self._items:
            raise EmptyCollectionError("pop")
        key = next(reversed(self._items))
        return self._items.pop(key)

    # --------- mapping ----------
    def map(self, fn: Callable) -> "Collection":
        fn = adapt_callback(fn)
        return Collection._from_entries((k, fn(v, k)) for k, v in self._items.items())

    def map_into(self, ctor: Callable[[Any], Any]) -> "Collection":
        """Pass each value to a single-argument constructor."""
        return Collection._from_entries((k, ctor(v)) for k, v in self._items.items())

    def map_spread(self, fn: Callable) -> "Collection":
        """Call fn with each (sequence) value unpacked as positional arguments."""
        entries = []
        for k, v in self._items.items():
            if not is_collapsible(v):
                raise NotCollapsibleError(k, v)
            entries.append((k, fn(*collapsible_values(v))))
        return Collection._from_entries(entries)

    def map_to_groups(self, fn: Callable) -> "Collection":
        """
        Group (group_key, value) pairs returned by fn(value, key).

        Groups appear in first-seen order, and each group keeps its values
        in encounter order.
        """
        fn = adapt_callback(fn)
        groups: Dict[Any, List[Any]] = {}
        for k, v in self._items.items():
            group_key, group_value = _group_pair(fn(v, k))
            groups.setdefault(group_key, []).append(group_value)
        return Collection._from_entries((gk, Collection(vs)) for gk, vs in groups.items())

    def flat_map(self, fn: Callable) -> "Collection":
        return self.map(fn).collapse()

    def collapse(self) -> "Collection":
        """
        Flatten one level of nested sequences, re-indexing from 0.

        Lists, tuples, mappings (their values) and collections are
        flattened; any other value, strings included, raises
        NotCollapsibleError.
        """
        flattened: List[Any] = []
        for k, v in self._items.items():
            if not is_collapsible(v):
                raise NotCollapsibleError(k, v)
            flattened.extend(collapsible_values(v))
        return Collection(flattened)

    def key_by(self, selector) -> "Collection":
        """Re-key entries by a field name or fn(value, key)."""
        retrieve = value_retriever(selector)
        return Collection._from_entries((retrieve(v, k), v) for k, v in self._items.items())

    def pluck(self, field: str) -> "Collection":
        retrieve = value_retriever(field)
        return Collection([retrieve(v, k) for k, v in self._items.items()])

    # --------- combining ----------
    def zip(self, other) -> "Collection":
        """(self[i], other[i]) pairs, as long as the shorter side."""
        return Collection(list(zip(self.to_list(), _values_of(other))))

    def concat(self, other) -> "Collection":
        return Collection(self.to_list() + _values_of(other))

    def combine(self, values) -> "Collection":
        """Use this collection's values as keys for the given values."""
        keys = self.to_list()
        values = _values_of(values)
        if len(keys) != len(values):
            raise LengthMismatchError(len(keys), len(values))
        try:
            return Collection._from_entries(zip(keys, values))
        except TypeError as e:
            raise InvalidArgumentError(f"combine() keys must be hashable: {e}") from e

    # --------- filtering ----------
    def filter(self, predicate: Optional[Callable] = None) -> "Collection":
        """Keep entries where predicate(value, key) holds (truthy values without a predicate)."""
        predicate = adapt_callback(predicate) if predicate else (lambda v, k: v)
        return Collection._from_entries((k, v) for k, v in self._items.items() if predicate(v, k))

    def reject(self, predicate: Callable) -> "Collection":
        predicate = adapt_callback(predicate)
        return Collection._from_entries((k, v) for k, v in self._items.items() if not predicate(v, k))

    def partition(self, predicate: Callable) -> Tuple["Collection", "Collection"]:
        """Split into (matching, rejected), both keeping original keys."""
        predicate = adapt_callback(predicate)
        matching, rejected = {}, {}
        for k, v in self._items.items():
            if predicate(v, k):
                matching[k] = v
            else:
                rejected[k] = v
        return Collection(matching), Collection(rejected)

    def unique(self, selector=None) -> "Collection":
        """Drop entries whose value (or selected field) was already seen."""
        retrieve = value_retriever(selector)
        seen_hashable = set()
        seen_other = []
        entries = []
        for k, v in self._items.items():
            marker = retrieve(v, k)
            try:
                if marker in seen_hashable:
                    continue
                seen_hashable.add(marker)
            except TypeError:
                if marker in seen_other:
                    continue
                seen_other.append(marker)
            entries.append((k, v))
        return Collection._from_entries(entries)

    def group_by(self, selector) -> "Collection":
        """
        Group values by a field name or by selector(value, key).

        Field names are looked up as mapping keys or attributes. Groups
        appear in first-seen order under their group key; the values inside
        each group are re-indexed from 0.
        """
        retrieve = value_retriever(selector)
        groups: Dict[Any, List[Any]] = {}
        for k, v in self._items.items():
            groups.setdefault(retrieve(v, k), []).append(v)
        return Collection._from_entries((gk, Collection(vs)) for gk, vs in groups.items())

    # --------- positional windows ----------
    def slice(self, offset: int, length: Optional[int] = None) -> "Collection":
        params = validate_params(SliceParams, offset=offset, length=length)
        entries = list(self._items.items())
        end = None if params.length is None else params.offset + params.length
        return Collection._from_entries(entries[params.offset:end])

    def take(self, n: int) -> "Collection":
        n = max(int(n), 0)
        return Collection._from_entries(list(self._items.items())[:n])

    def skip(self, n: int) -> "Collection":
        n = max(int(n), 0)
        return Collection._from_entries(list(self._items.items())[n:])

    def for_page(self, page: int, per_page: int) -> "Collection":
        params = validate_params(PageParams, page=page, per_page=per_page)
        return self.slice(params.offset, params.per_page)

    def take_while(self, predicate: Callable) -> "Collection":
        predicate = adapt_callback(predicate)
        entries = []
        for k, v in self._items.items():
            if not predicate(v, k):
                break
            entries.append((k, v))
        return Collection._from_entries(entries)

    def take_until(self, predicate: Callable) -> "Collection":
        predicate = adapt_callback(predicate)
        return self.take_while(lambda v, k: not predicate(v, k))

    def skip_while(self, predicate: Callable) -> "Collection":
        predicate = adapt_callback(predicate)
        entries = list(self._items.items())
        index = 0
        while index < len(entries) and predicate(entries[index][1], entries[index][0]):
            index += 1
        return Collection._from_entries(entries[index:])

    def skip_until(self, predicate: Callable) -> "Collection":
        predicate = adapt_callback(predicate)
        return self.skip_while(lambda v, k: not predicate(v, k))

    def chunk(self, size: int) -> "Collection":
        """Split into collections of at most size entries; chunks keep original keys."""
        params = validate_params(ChunkParams, size=size)
        entries = list(self._items.items())
        return Collection([
            Collection._from_entries(entries[i:i + params.size])
            for i in range(0, len(entries), params.size)
        ])

    # --------- lookups ----------
    def first(self, predicate: Optional[Callable] = None, default=MISSING):
        """First value matching predicate(value, key); NotFoundError unless a default is given."""
        predicate = adapt_callback(predicate) if predicate else None
        for k, v in self._items.items():
            if predicate is None or predicate(v, k):
                return v
        if default is not MISSING:
            return default
        raise NotFoundError("No entry matched" if predicate else "Collection is empty")

    def last(self, predicate: Optional[Callable] = None, default=MISSING):
        predicate = adapt_callback(predicate) if predicate else None
        for k, v in reversed(self._items.items()):
            if predicate is None or predicate(v, k):
                return v
        if default is not MISSING:
            return default
        raise NotFoundError("No entry matched" if predicate else "Collection is empty")

    def random(self, count: Optional[int] = None, rng: Optional[random.Random] = None):
        """
        One uniformly chosen value, or a collection of count values.

        With count, the drawn values keep their relative order.
        """
        rng = rng or default_random()
        values = self.to_list()
        if count is None:
            if not values:
                raise EmptyCollectionError("pick a random value from")
            return rng.choice(values)
        params = validate_params(RandomParams, available=len(values), count=count)
        positions = sorted(rng.sample(range(len(values)), params.count))
        return Collection([values[i] for i in positions])

    def contains(self, needle) -> bool:
        """
        Value equality check, or predicate(value, key) when given a callable.

        Every callable needle is treated as a predicate, classes included, so
        contains(int) tests int(value) for truthiness. To look for a class or
        function stored as a value, pass a predicate such as
        lambda v: v is int.
        """
        if callable(needle):
            predicate = adapt_callback(needle)
            return any(predicate(v, k) for k, v in self._items.items())
        return any(v == needle for v in self._items.values())

    def every(self, predicate: Callable) -> bool:
        predicate = adapt_callback(predicate)
        return all(predicate(v, k) for k, v in self._items.items())

    def is_empty(self) -> bool:
        return not self._items

    def is_not_empty(self) -> bool:
        return bool(self._items)

    def count(self) -> int:
        return len(self._items)

    # --------- ordering ----------
    def reverse(self) -> "Collection":
        return Collection._from_entries(reversed(list(self._items.items())))

    def sort(self, comparator: Optional[Callable[[Any, Any], int]] = None) -> "Collection":
        """Stable ascending sort by value; keys travel with their values."""
        return self._sorted(self._value_key(comparator), descending=False)

    def sort_desc(self, comparator: Optional[Callable[[Any, Any], int]] = None) -> "Collection":
        return self._sorted(self._value_key(comparator), descending=True)

    def sort_by(self, selector, descending: bool = False) -> "Collection":
        retrieve = value_retriever(selector)
        return self._sorted(lambda entry: retrieve(entry[1], entry[0]), descending)

    @staticmethod
    def _value_key(comparator):
        if comparator is None:
            return lambda entry: entry[1]
        cmp_key = functools.cmp_to_key(comparator)
        return lambda entry: cmp_key(entry[1])

    def _sorted(self, key, descending: bool) -> "Collection":
        try:
            entries = sorted(self._items.items(), key=key, reverse=descending)
        except TypeError as e:
            raise NotComparableError(f"Values cannot be ordered: {e}") from e
        return Collection._from_entries(entries)

    # --------- aggregates ----------
    def sum(self, selector=None):
        retrieve = value_retriever(selector)
        total = 0
        for k, v in self._items.items():
            total += require_number("sum", retrieve(v, k))
        return total

    def avg(self, selector=None):
        if not self._items:
            raise EmptyCollectionError("average")
        return self.sum(selector) / len(self._items)

    def median(self, selector=None):
        if not self._items:
            raise EmptyCollectionError("take the median of")
        retrieve = value_retriever(selector)
        numbers = sorted(require_number("median", retrieve(v, k)) for k, v in self._items.items())
        middle = len(numbers) // 2
        if len(numbers) % 2:
            return numbers[middle]
        return (numbers[middle - 1] + numbers[middle]) / 2

    def min(self, selector=None):
        return self._extreme(min, "min", selector)

    def max(self, selector=None):
        return self._extreme(max, "max", selector)

    def _extreme(self, pick, name: str, selector):
        if not self._items:
            raise EmptyCollectionError(f"take the {name} of")
        retrieve = value_retriever(selector)
        try:
            return pick(retrieve(v, k) for k, v in self._items.items())
        except TypeError as e:
            raise NotComparableError(f"{name}() values cannot be compared: {e}") from e

    def reduce(self, fn: Callable, initial=MISSING):
        """
        Left fold of fn(carry, value[, key]) in iteration order.

        Without initial, the first value seeds the carry and folding starts
        at the second entry.
        """
        fn = adapt_callback(fn, max_args=3)
        entries = iter(self._items.items())
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

    def join(self, separator: str = "", last_separator: Optional[str] = None) -> str:
        """Join values as text, with last_separator between the final two."""
        parts = [str(v) for v in self._items.values()]
        if last_separator is None or len(parts) < 2:
            return separator.join(parts)
        return separator.join(parts[:-1]) + last_separator + parts[-1]

    # --------- side effects ----------
    def each(self, fn: Callable) -> "Collection":
        """Call fn(value, key) per entry; stop early when it returns False."""
        fn = adapt_callback(fn)
        for k, v in list(self._items.items()):
            if fn(v, k) is False:
                break
        return self

    # --------- protocol ----------
    def __iter__(self) -> Iterator[Tuple[Any, Any]]:
        return iter(list(self._items.items()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, value) -> bool:
        return any(v == value for v in self._items.values())

    def __getitem__(self, key):
        try:
            return self._items[key]
        except KeyError:
            raise NotFoundError(f"No entry with key {key!r}") from None

    def __eq__(self, other):
        if isinstance(other, Collection):
            return list(self._items.items()) == list(other._items.items())
        if isinstance(other, (list, tuple)):
            return self.all() == list(other)
        if isinstance(other, Mapping):
            return self._items == dict(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        return f"Collection({self.all()!r})"


def collect(items=None) -> Collection:
    """Shorthand for Collection.of(items)"""
    return Collection.of(items)
