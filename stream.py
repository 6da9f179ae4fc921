"""
Lazy, pull-based streams.

A stream is a chain of stages. Each stage owns its upstream stage and hands
out one element per call to ``next()``. Nothing is evaluated while the chain
is being built; terminal operations drive the pulls.
"""

import logging
from collections.abc import Sequence

logger = logging.getLogger(__name__)


class _End:
    """Type of the exhaustion marker. Only one instance ever exists."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "END"

    def __reduce__(self):
        return (_End, ())


# Returned by next() (and some terminals) when there are no more elements.
END = _End()

# Marks an omitted argument where None is a legitimate value.
_MISSING = object()


class StreamConstructionError(TypeError):
    """Raised when a stream is built from an unsupported source."""
    pass


class Stream:
    """
    Base stage. Subclasses implement ``next()``; every other operation is
    written in terms of it.
    """
    def __init__(self, upstream=None, fn=None):
        self._upstream = upstream
        self._fn = fn

    def next(self):
        """Return the next element, or END once exhausted."""
        raise NotImplementedError

    # --------- factories ----------
    @staticmethod
    def of(source):
        """Build a source stage from a sequence or any iterable."""
        if isinstance(source, Stream):
            return source
        if isinstance(source, Sequence):
            return SequenceStream(source)
        return IteratorStream(source)

    @staticmethod
    def zip(streams):
        """Combine streams position by position into tuples."""
        return ZipStream(streams)

    # --------- chainable operators (lazy) ----------
    def map(self, fn):
        return MapStream(self, fn)

    def flat_map(self, fn):
        return FlatMapStream(self, fn)

    def filter(self, pred):
        return FilterStream(self, pred)

    def peek(self, fn):
        return PeekStream(self, fn)

    def take_while(self, pred):
        return TakeWhileStream(self, pred)

    def skip_while(self, pred):
        return SkipWhileStream(self, pred)

    def skip(self, n):
        return SkipStream(self, n)

    def limit(self, n):
        return LimitStream(self, n)

    def batch(self, size):
        return BatchStream(self, size)

    def chunk(self, size):
        """Alias for batch()"""
        return self.batch(size)

    def page(self, page_number, page_size):
        """Get one page of the stream (1-indexed)"""
        if page_number < 1:
            raise ValueError("Page number must be >= 1")
        return self.skip((page_number - 1) * page_size).limit(page_size)

    # --------- terminal operations ----------
    def for_each(self, consumer):
        elem = self.next()
        while elem is not END:
            consumer(elem)
            elem = self.next()

    def collect(self):
        items = []
        self.for_each(items.append)
        return items

    def to_list(self):
        """Alias for collect()"""
        return self.collect()

    def count(self):
        counter = 0
        for _ in self:
            counter += 1
        return counter

    def any_match(self, pred):
        for elem in self:
            if pred(elem):
                return True
        return False

    def none_match(self, pred):
        for elem in self:
            if pred(elem):
                return False
        return True

    def all_match(self, pred):
        for elem in self:
            if not pred(elem):
                return False
        return True

    def find_first(self, pred):
        """Return the first element satisfying pred, or END"""
        for elem in self:
            if pred(elem):
                return elem
        return END

    def reduce(self, fn, initial=_MISSING):
        """
        Fold the stream from the left with ``fn(accumulated, element)``.

        Without an initial value the first element seeds the fold and is not
        passed to ``fn`` on its own. An empty stream gives ``initial`` (or END
        when none was given). If ``fn`` returns END the fold stops and END is
        returned.
        """
        if initial is _MISSING:
            acc = self.next()
            if acc is END:
                return END
        else:
            acc = initial

        elem = self.next()
        while elem is not END:
            acc = fn(acc, elem)
            if acc is END:
                logger.debug("Reducer returned END, stopping reduction")
                return END
            elem = self.next()
        return acc

    def sum(self, start=0):
        total = start
        for elem in self:
            total += elem
        return total

    def min(self, default=END):
        return self._extreme(lambda candidate, best: candidate < best, default)

    def max(self, default=END):
        return self._extreme(lambda candidate, best: candidate > best, default)

    def first(self, default=END):
        elem = self.next()
        return default if elem is END else elem

    def last(self, default=END):
        last_item = default
        for elem in self:
            last_item = elem
        return last_item

    def group_by(self, key_fn):
        """Group elements by key_fn into a dict of lists, keys in first-seen order"""
        groups = {}
        for elem in self:
            groups.setdefault(key_fn(elem), []).append(elem)
        return groups

    def paginate(self, page_size):
        """Iterate consecutive pages (lists of up to page_size elements).

        An invalid page_size fails here, before any page is requested.
        """
        pages = self.batch(page_size)
        return (list(page) for page in pages)

    # --------- iterator protocol ----------
    def __iter__(self):
        elem = self.next()
        while elem is not END:
            yield elem
            elem = self.next()

    # --------- helpers ----------
    def _extreme(self, better, default):
        best = self.next()
        if best is END:
            return default
        for elem in self:
            if better(elem, best):
                best = elem
        return best

    def __repr__(self):
        return f"{type(self).__name__}(upstream={self._upstream!r})"


# --------- source stages ----------
class SequenceStream(Stream):
    """Walks an indexable sequence with a cursor."""
    def __init__(self, source):
        if not isinstance(source, Sequence):
            logger.debug(f"Rejected non-sequence source of type {type(source).__name__}")
            raise StreamConstructionError(
                f"Indexed stream requires a sequence, got {type(source).__name__}"
            )
        super().__init__()
        self._source = source
        self._index = 0

    def next(self):
        if self._index >= len(self._source):
            return END
        result = self._source[self._index]
        self._index += 1
        return result

    def __repr__(self):
        return f"SequenceStream(len={len(self._source)}, index={self._index})"


class IteratorStream(Stream):
    """Adapts anything iterable. The iterator is acquired once, up front."""
    def __init__(self, source):
        try:
            iterator = iter(source)
        except TypeError as e:
            logger.debug(f"Rejected non-iterable source of type {type(source).__name__}")
            raise StreamConstructionError(
                f"Stream source does not support iteration: {type(source).__name__}"
            ) from e
        super().__init__()
        self._source = source
        self._iterator = iterator
        self._done = False

    def next(self):
        if self._done:
            return END
        try:
            return next(self._iterator)
        except StopIteration:
            self._done = True
            return END

    def __repr__(self):
        return f"IteratorStream(source={type(self._source).__name__}, done={self._done})"


# --------- combinators ----------
class ZipStream(Stream):
    """
    Pulls one element from each member per step and yields them as a tuple.
    Stops at the shortest member. Once any member runs dry the zip is done and
    no member is pulled again.
    """
    def __init__(self, streams):
        if not isinstance(streams, (list, tuple)):
            raise StreamConstructionError(
                f"Zipping requires a list of streams, got {type(streams).__name__}"
            )
        for position, member in enumerate(streams):
            if not isinstance(member, Stream):
                raise StreamConstructionError(
                    f"Zip member {position} is not a stream: {type(member).__name__}"
                )
        super().__init__(list(streams))
        self._done = not streams

    def next(self):
        if self._done:
            return END
        row = []
        for position, member in enumerate(self._upstream):
            elem = member.next()
            if elem is END:
                logger.debug(f"Zip member {position} exhausted after partial step of {len(row)}")
                self._done = True
                return END
            row.append(elem)
        return tuple(row)

    def __repr__(self):
        return f"ZipStream(members={len(self._upstream)}, done={self._done})"


# --------- transforms ----------
class MapStream(Stream):
    def __init__(self, upstream, fn):
        super().__init__(upstream, fn)
        self._done = False

    def next(self):
        if self._done:
            return END
        elem = self._upstream.next()
        if elem is END:
            return END
        result = self._fn(elem)
        if result is END:
            # the mapper ended the stream
            self._done = True
        return result


class FlatMapStream(Stream):
    """
    Maps each element to a stream (or anything Stream.of accepts) and yields
    the inner elements in order. Empty inner streams are skipped.
    """
    def __init__(self, upstream, fn):
        super().__init__(upstream, fn)
        self._inner = None

    def next(self):
        while True:
            if self._inner is not None:
                elem = self._inner.next()
                if elem is not END:
                    return elem

            outer = self._upstream.next()
            if outer is END:
                self._inner = None
                return END
            self._inner = Stream.of(self._fn(outer))


class PeekStream(Stream):
    def next(self):
        elem = self._upstream.next()
        if elem is END:
            return END
        self._fn(elem)
        return elem


# --------- filtering / slicing ----------
class FilterStream(Stream):
    def next(self):
        elem = self._upstream.next()
        while elem is not END:
            if self._fn(elem):
                return elem
            elem = self._upstream.next()
        return END


class TakeWhileStream(Stream):
    def __init__(self, upstream, pred):
        super().__init__(upstream, pred)
        self._done = False

    def next(self):
        if self._done:
            return END
        elem = self._upstream.next()
        if elem is END:
            return END
        if self._fn(elem):
            return elem
        self._done = True
        return END


class SkipWhileStream(Stream):
    def __init__(self, upstream, pred):
        super().__init__(upstream, pred)
        self._started = False

    def next(self):
        if self._started:
            return self._upstream.next()
        elem = self._upstream.next()
        while elem is not END:
            if not self._fn(elem):
                self._started = True
                return elem
            elem = self._upstream.next()
        return END


class SkipStream(Stream):
    def __init__(self, upstream, count):
        super().__init__(upstream)
        self._remaining = int(count)

    def next(self):
        elem = self._upstream.next()
        while self._remaining > 0 and elem is not END:
            self._remaining -= 1
            elem = self._upstream.next()
        return elem


class LimitStream(Stream):
    def __init__(self, upstream, count):
        super().__init__(upstream)
        self._remaining = int(count)

    def next(self):
        if self._remaining <= 0:
            return END
        self._remaining -= 1
        return self._upstream.next()


class BatchStream(Stream):
    """Groups consecutive elements into tuples of ``size``; the last one may be shorter."""
    def __init__(self, upstream, size):
        size = int(size)
        if size < 1:
            raise ValueError("Batch size must be >= 1")
        super().__init__(upstream)
        self._size = size

    def next(self):
        bucket = []
        while len(bucket) < self._size:
            elem = self._upstream.next()
            if elem is END:
                break
            bucket.append(elem)
        if not bucket:
            return END
        return tuple(bucket)


# Module-level shortcuts
of = Stream.of
zip_streams = Stream.zip
