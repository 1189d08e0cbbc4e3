import pytest

from tuffy.instruction import (
    Br,
    BrIf,
    Call,
    Const,
    Continue,
    FloatBinary,
    FloatUnary,
    ICmp,
    ICmpOp,
    Instruction,
    IntBinary,
    IntUnary,
    Load,
    LoadAtomic,
    Opcode,
    Operand,
    Origin,
    Param,
    RegionYield,
    Ret,
    SymbolAddr,
    Trap,
    Unreachable,
)
from tuffy.module import SymbolId
from tuffy.types import Annotation, MemoryOrdering, Type
from tuffy.value import BlockRef, ValueRef

V0 = ValueRef.inst_result(0)
V1 = ValueRef.inst_result(1)
MEM = ValueRef.block_arg(0)


def test_operand_of_has_no_annotation():
    op = Operand.of(V0)
    assert op.value == V0
    assert op.annotation is None


def test_operand_of_operand_is_identity():
    op = Operand.annotated(V0, Annotation.signed(32))
    assert Operand.of(op) is op
    assert op.annotation == Annotation.signed(32)


def test_origin():
    assert Origin.synthetic().sources == ()
    assert Origin.from_source(3).sources == (3,)
    assert Origin([1, 2]).sources == (1, 2)


@pytest.mark.parametrize(
    "op",
    [
        Ret(Operand.of(V0), Operand.of(MEM)),
        Ret(None, Operand.of(MEM)),
        Br(BlockRef(1)),
        BrIf(Operand.of(V0), BlockRef(1), [], BlockRef(2), []),
        Continue([Operand.of(V0)]),
        RegionYield(),
        Unreachable(),
        Trap(),
    ],
)
def test_terminators(op):
    assert op.is_terminator() is True


@pytest.mark.parametrize(
    "op",
    [
        Param(0),
        Const(1),
        IntBinary(Opcode.ADD, Operand.of(V0), Operand.of(V1)),
        IntUnary(Opcode.COUNT_ONES, Operand.of(V0)),
        ICmp(ICmpOp.GT, Operand.of(V0), Operand.of(V1)),
        Load(Operand.of(V0), 4, Operand.of(MEM)),
        SymbolAddr(SymbolId(0)),
    ],
)
def test_non_terminators(op):
    assert op.is_terminator() is False


def test_opcode_of_fixed_ops():
    assert Param(0).opcode is Opcode.PARAM
    assert Trap().opcode is Opcode.TRAP
    assert IntBinary(Opcode.SHR, Operand.of(V0), Operand.of(V1)).opcode is Opcode.SHR


def test_int_binary_rejects_other_opcodes():
    with pytest.raises(ValueError):
        IntBinary(Opcode.FADD, Operand.of(V0), Operand.of(V1))


def test_float_ops_reject_other_opcodes():
    with pytest.raises(ValueError):
        FloatBinary(Opcode.ADD, Operand.of(V0), Operand.of(V1))
    with pytest.raises(ValueError):
        FloatUnary(Opcode.COPYSIGN, Operand.of(V0))
    with pytest.raises(ValueError):
        IntUnary(Opcode.FNEG, Operand.of(V0))


def test_list_fields_become_tuples():
    call = Call(Operand.of(V0), [Operand.of(V1)], Operand.of(MEM))
    assert call.args == (Operand.of(V1),)
    br = BrIf(Operand.of(V0), BlockRef(1), [Operand.of(V1)], BlockRef(2), [])
    assert br.then_args == (Operand.of(V1),)
    assert br.else_args == ()


def test_ops_compare_structurally():
    assert Const(5) == Const(5)
    assert (Const(5) == Const(6)) is False


def test_result_count():
    single = Instruction(Const(1), Type.INT)
    multi = Instruction(
        LoadAtomic(Operand.of(V0), MemoryOrdering.ACQUIRE, Operand.of(MEM)),
        Type.MEM,
        secondary_ty=Type.INT,
    )
    assert single.result_count() == 1
    assert multi.result_count() == 2
    assert single.origin == Origin.synthetic()