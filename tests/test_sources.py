import pytest
from collections import OrderedDict, deque

from stream import (
    Stream, END, StreamConstructionError, SequenceStream, IteratorStream, of
)


class TestSequenceSource:
    """Indexed sources over sequences"""

    def test_collect_reproduces_list(self):
        """Test that a list source yields its elements in order"""
        assert Stream.of([1, 2, 3, 4]).collect() == [1, 2, 3, 4]

    def test_empty_list(self):
        """Test that an empty list yields nothing"""
        assert Stream.of([]).collect() == []

    def test_tuple_and_range_use_indexed_path(self):
        """Test that tuples and ranges are treated as sequences"""
        assert isinstance(Stream.of((1, 2)), SequenceStream)
        assert isinstance(Stream.of(range(3)), SequenceStream)
        assert Stream.of(range(3)).collect() == [0, 1, 2]

    def test_rejects_non_sequence(self):
        """Test that the indexed stage refuses non-sequences"""
        with pytest.raises(StreamConstructionError):
            SequenceStream({"a": 1})
        with pytest.raises(StreamConstructionError):
            SequenceStream(x for x in range(3))

    def test_exhaustion_is_idempotent(self):
        """Test that END keeps coming back after exhaustion"""
        s = Stream.of([1])
        assert s.next() == 1
        assert s.next() is END
        assert s.next() is END
        assert s.next() is END

    def test_falsy_values_are_elements(self):
        """Test that None, 0, False and empty strings are not mistaken for END"""
        data = [None, 0, False, "", [], None]
        assert Stream.of(data).collect() == data
        assert Stream.of(data).count() == 6


class TestIteratorSource:
    """Cursor sources over any iterable"""

    def test_dict_keys_and_values(self):
        """Test iteration over mapping views"""
        m = OrderedDict([("a", 1), ("b", 2), ("c", 3)])
        assert Stream.of(m.keys()).collect() == ["a", "b", "c"]
        assert Stream.of(m.values()).collect() == [1, 2, 3]

    def test_empty_iterables(self):
        """Test empty iterables yield nothing"""
        m = {}
        assert Stream.of(m.keys()).collect() == []
        assert Stream.of(iter([])).collect() == []

    def test_generator_source(self):
        """Test that generators are adapted through the cursor path"""
        s = Stream.of(x * 10 for x in range(3))
        assert isinstance(s, IteratorStream)
        assert s.collect() == [0, 10, 20]

    def test_set_and_deque(self):
        """Test non-sequence collections go through the cursor path"""
        assert sorted(Stream.of({3, 1, 2}).collect()) == [1, 2, 3]
        assert Stream.of(deque([1, 2])).collect() == [1, 2]

    def test_iterator_acquired_at_construction(self):
        """Test that the cursor is taken when the stage is built"""
        class Source:
            def __init__(self):
                self.iter_calls = 0

            def __iter__(self):
                self.iter_calls += 1
                return iter([1, 2])

        source = Source()
        s = Stream.of(source)
        assert source.iter_calls == 1
        assert s.collect() == [1, 2]
        assert source.iter_calls == 1

    def test_rejects_non_iterable(self):
        """Test that objects without iteration support are rejected"""
        with pytest.raises(StreamConstructionError):
            Stream.of(42)
        with pytest.raises(StreamConstructionError):
            Stream.of(object())

    def test_construction_error_is_type_error(self):
        """Test the construction error can be caught as TypeError"""
        with pytest.raises(TypeError):
            IteratorStream(3.5)

    def test_stops_pulling_finished_iterator(self):
        """Test END is latched even if the iterator would resume"""
        class Flaky:
            def __init__(self):
                self.calls = 0

            def __iter__(self):
                return self

            def __next__(self):
                self.calls += 1
                if self.calls == 2:
                    raise StopIteration
                return self.calls

        flaky = Flaky()
        s = Stream.of(flaky)
        assert s.next() == 1
        assert s.next() is END
        assert s.next() is END
        assert flaky.calls == 2


class TestFactory:
    """The generic of() factory"""

    def test_module_level_alias(self):
        """Test of() is the same factory as Stream.of"""
        assert of([1, 2]).collect() == [1, 2]

    def test_stream_passes_through(self):
        """Test that handing a stream to of() returns it unchanged"""
        s = Stream.of([1])
        assert Stream.of(s) is s

    def test_string_is_a_sequence(self):
        """Test strings stream their characters"""
        assert Stream.of("abc").collect() == ["a", "b", "c"]

    def test_end_marker(self):
        """Test END is a falsy singleton with a readable repr"""
        assert not END
        assert repr(END) == "END"
        assert type(END)() is END
