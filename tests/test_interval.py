import pytest
from seqpack.core.interval import Interval, Strand, NOT_FOUND


class TestStrand:
    def test_from_symbol(self):
        assert Strand.from_symbol('+') is Strand.FORWARD
        assert Strand.from_symbol(b'-') is Strand.REVERSE
        assert Strand.from_symbol(-1) is Strand.REVERSE
        assert Strand.from_symbol(None) is Strand.UNSTRANDED
        assert Strand.from_symbol(7) is Strand.UNSTRANDED

    def test_str(self):
        assert str(Strand.FORWARD) == '+'
        assert str(Strand.UNSTRANDED) == '.'


class TestInterval:
    def test_basics(self):
        interval = Interval(2, 5)
        assert len(interval) == 3
        assert repr(interval) == '2:5(.)'
        assert tuple(interval) == (2, 5, Strand.UNSTRANDED)
        assert interval.to_slice() == slice(2, 5)
        assert list(interval.to_range()) == [2, 3, 4]

    def test_equality_and_hash(self):
        assert Interval(2, 5) == Interval(2, 5)
        assert Interval(2, 5) != Interval(2, 5, '-')
        assert len({Interval(1, 2), Interval(1, 2)}) == 1

    def test_contains(self):
        interval = Interval(2, 6)
        assert 2 in interval
        assert 6 not in interval
        assert Interval(3, 5) in interval
        assert slice(1, 4) not in interval

    def test_not_found(self):
        assert not NOT_FOUND.found
        assert Interval(0, 0).found
        assert NOT_FOUND != Interval(0, 0)

    def test_shift_and_reverse_complement(self):
        assert Interval(2, 5).shift(3) == Interval(5, 8)
        assert Interval(2, 5, '+').reverse_complement(10) == Interval(5, 8, '-')

    def test_from_item(self):
        assert Interval.from_item(3) == Interval(3, 4)
        assert Interval.from_item(slice(-3, None), length=10) == Interval(7, 10)
        with pytest.raises(ValueError):
            Interval.from_item(slice(0, 5, 2))
        with pytest.raises(ValueError):
            Interval.from_item(slice(0, None))
        with pytest.raises(TypeError):
            Interval.from_item('ACGT')
