import pytest

from stream import Stream, END, StreamConstructionError, ZipStream, zip_streams


class TestZip:
    """Zipping several streams into tuples"""

    def test_truncates_to_shortest(self):
        """Test pairing by position stops at the shorter stream"""
        s1 = Stream.of([1, 2, 3, 4])
        s2 = Stream.of(["One", "Two"])
        assert Stream.zip([s1, s2]).collect() == [(1, "One"), (2, "Two")]

        s3 = Stream.of(["One", "Two"])
        s4 = Stream.of([1, 2, 3, 4])
        assert Stream.zip([s3, s4]).collect() == [("One", 1), ("Two", 2)]

    def test_empty_streams(self):
        """Test zipping empty streams yields nothing"""
        assert Stream.zip([Stream.of([]), Stream.of([])]).collect() == []
        assert Stream.zip([Stream.of([1, 2]), Stream.of([])]).collect() == []

    def test_no_members(self):
        """Test an empty member list is exhausted immediately"""
        z = Stream.zip([])
        assert z.next() is END
        assert z.collect() == []

    def test_three_way(self):
        """Test more than two members"""
        z = zip_streams((Stream.of("ab"), Stream.of([1, 2, 3]), Stream.of([True, False])))
        assert z.collect() == [("a", 1, True), ("b", 2, False)]

    def test_infinite_member(self):
        """Test zipping with an unbounded stream"""
        from itertools import count
        z = Stream.zip([Stream.of(count()), Stream.of("xyz")])
        assert z.collect() == [(0, "x"), (1, "y"), (2, "z")]

    def test_rejects_non_list(self):
        """Test the argument must be a list of streams"""
        with pytest.raises(StreamConstructionError):
            Stream.zip(Stream.of([1]))
        with pytest.raises(StreamConstructionError):
            Stream.zip("not a list")

    def test_rejects_non_stream_members(self):
        """Test every member must be a stream"""
        with pytest.raises(StreamConstructionError):
            ZipStream([Stream.of([1]), [1, 2]])

    def test_member_pull_order(self):
        """Test members are pulled in list order on every step"""
        order = []
        a = Stream.of([1, 2]).peek(lambda x: order.append(("a", x)))
        b = Stream.of([3, 4]).peek(lambda x: order.append(("b", x)))
        Stream.zip([a, b]).collect()
        assert order == [("a", 1), ("b", 3), ("a", 2), ("b", 4)]

    def test_no_pulls_after_shortest_ends(self, counted):
        """Test members are not pulled again once one member ran dry"""
        long_stream = counted([1, 2, 3, 4, 5])
        short_stream = counted([1])
        z = Stream.zip([short_stream, long_stream])

        assert z.collect() == [(1, 1)]
        # step 2: short stream reports END, long stream is left alone
        assert short_stream.pulls == 2
        assert long_stream.pulls == 1

        assert z.next() is END
        assert z.next() is END
        assert short_stream.pulls == 2
        assert long_stream.pulls == 1

    def test_earlier_members_lose_one_element_on_last_step(self, counted):
        """Test a member listed before the exhausted one is pulled on the final step"""
        long_stream = counted([1, 2, 3])
        short_stream = counted([1])
        z = Stream.zip([long_stream, short_stream])

        assert z.collect() == [(1, 1)]
        assert long_stream.pulls == 2
        assert long_stream.next() == 3
