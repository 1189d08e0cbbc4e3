import pytest

from tuffy.value import BlockRef, InstRef, RegionRef, ValueRef


def test_inst_result_round_trip():
    v = ValueRef.inst_result(7)
    assert v.index() == 7
    assert v.inst_index() == 7
    assert v.raw() == 7
    assert not v.is_block_arg()
    assert not v.is_secondary_result()


def test_secondary_result_round_trip():
    v = ValueRef.inst_secondary_result(3)
    assert v.is_secondary_result()
    assert not v.is_block_arg()
    assert v.inst_index() == 3
    assert v.raw() == 3 | (1 << 30)


def test_block_arg_round_trip():
    v = ValueRef.block_arg(5)
    assert v.is_block_arg()
    assert not v.is_secondary_result()
    assert v.index() == 5
    assert v.raw() == 5 | (1 << 31)


@pytest.mark.parametrize("index", [0, 1, 1000, (1 << 30) - 1])
def test_kinds_are_distinct(index):
    refs = {
        ValueRef.inst_result(index),
        ValueRef.inst_secondary_result(index),
        ValueRef.block_arg(index),
    }
    assert len(refs) == 3
    assert {r.index() for r in refs} == {index}


def test_inst_index_on_block_arg_raises():
    with pytest.raises(ValueError):
        ValueRef.block_arg(0).inst_index()


@pytest.mark.parametrize("index", [1 << 30, 1 << 31, -1])
def test_index_out_of_range(index):
    with pytest.raises(ValueError):
        ValueRef.inst_result(index)


def test_equality_and_hashing():
    assert ValueRef.inst_result(2) == ValueRef.inst_result(2)
    assert {ValueRef.block_arg(1): "x"}[ValueRef.block_arg(1)] == "x"


def test_entity_refs_hold_index():
    assert BlockRef(4).index == 4
    assert RegionRef(0) == RegionRef(0)
    assert InstRef(2) < InstRef(3)


def test_entity_refs_reject_negative():
    with pytest.raises(ValueError):
        BlockRef(-1)
    with pytest.raises(ValueError):
        RegionRef(-1)