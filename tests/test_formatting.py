import pytest

from tuffy.formatting import (
    ValueNumbering,
    format_annotation,
    format_fp_rewrite_flags,
    format_instruction,
    format_type,
    number_values,
)
from tuffy.function import BasicBlock, BlockArg, Function, Region, RegionKind
from tuffy.instruction import (
    AtomicCmpXchg,
    AtomicRmw,
    AtomicRmwOp,
    BoolToInt,
    Br,
    BrIf,
    Call,
    Const,
    Continue,
    Fence,
    ICmp,
    ICmpOp,
    Instruction,
    IntBinary,
    LoadAtomic,
    Opcode,
    Operand,
    Param,
    Ret,
    Store,
    StoreAtomic,
    SymbolAddr,
)
from tuffy.module import SymbolTable
from tuffy.types import (
    Annotation,
    FloatType,
    FpRewriteFlags,
    MemoryOrdering,
    Type,
    VectorType,
)
from tuffy.value import BlockRef, RegionRef, ValueRef

MEM0 = ValueRef.block_arg(0)


def r(i):
    return Operand.of(ValueRef.inst_result(i))


def s(i):
    return Operand.of(ValueRef.inst_secondary_result(i))


def _single_block(params, insts, param_names=(), name=None):
    func = Function(name, params, param_names=list(param_names), ret_ty=Type.INT)
    func.regions.append(Region(RegionKind.FUNCTION, None, BlockRef(0), [BlockRef(0)]))
    func.block_args.append(BlockArg(Type.MEM))
    func.blocks.append(BasicBlock(RegionRef(0), 0, 1, 0, len(insts)))
    func.instructions.extend(insts)
    return func


def _lines(func, symbols=None):
    numbering = number_values(func)
    return [
        format_instruction(func, v, inst, numbering, symbols)
        for v, inst in func.block_insts_with_values(BlockRef(0))
    ]


def _add_function(param_names=()):
    st = SymbolTable()
    name = st.intern("add")
    names = [st.intern(n) for n in param_names]
    insts = [
        Instruction(Param(0), Type.INT),
        Instruction(Param(1), Type.INT),
        Instruction(IntBinary(Opcode.ADD, r(0), r(1)), Type.INT),
        Instruction(Ret(r(2), Operand.of(MEM0)), Type.INT),
    ]
    return _single_block([Type.INT, Type.INT], insts, names, name), st


def test_format_type_basic_kinds():
    assert format_type(Type.INT) == "int"
    assert format_type(Type.MEM) == "mem"
    assert format_type(Type.ptr(0)) == "ptr"
    assert format_type(Type.float(FloatType.F64)) == "f64"


def test_format_type_vectors():
    assert format_type(Type.vec(VectorType(128))) == "vec<128>"
    assert format_type(Type.vec(VectorType(128, scalable=True))) == "vec<vscale x 128>"


def test_format_annotation():
    assert format_annotation(Annotation.signed(32)) == ":s32"
    assert format_annotation(Annotation.unsigned(8)).startswith(":u")


def test_format_fp_rewrite_flags():
    assert format_fp_rewrite_flags(FpRewriteFlags()) == ""
    assert format_fp_rewrite_flags(FpRewriteFlags(reassoc=True, contract=True)) == " reassoc contract"


def test_numbering_assigns_sequentially():
    numbering = ValueNumbering()
    first = numbering.assign(ValueRef.block_arg(3))
    second = numbering.assign(ValueRef.inst_result(3))
    assert (first, second) == (0, 1)
    assert numbering.name(ValueRef.inst_result(3)) == 1
    assert numbering.format_value(ValueRef.block_arg(3)) == "v0"


def test_numbering_unknown_value_raises():
    with pytest.raises(KeyError):
        ValueNumbering().name(ValueRef.inst_result(0))


def test_format_operand_with_annotation():
    numbering = ValueNumbering()
    numbering.assign(ValueRef.inst_result(0))
    operand = Operand.annotated(ValueRef.inst_result(0), Annotation.signed(32))
    assert numbering.format_operand(operand) == "v0:s32"
    assert numbering.format_operands([operand, Operand.of(ValueRef.inst_result(0))]) == "v0:s32, v0"


def test_add_function_lines():
    func, st = _add_function()
    assert _lines(func, st) == ["v1 = param 0", "v2 = param 1", "v3 = add v1, v2", "ret v3, v0"]


def test_named_params_need_symbols():
    func, st = _add_function(["a", "b"])
    assert _lines(func, st)[:2] == ["v1 = param %a", "v2 = param %b"]
    assert _lines(func)[:2] == ["v1 = param 0", "v2 = param 1"]


def test_atomic_lines_number_secondary_results():
    mem = Operand.of(MEM0)
    insts = [
        Instruction(Param(0), Type.ptr(0)),
        Instruction(Param(1), Type.INT),
        Instruction(LoadAtomic(r(0), MemoryOrdering.ACQUIRE, mem), Type.MEM, Type.INT),
        Instruction(StoreAtomic(r(1), r(0), MemoryOrdering.RELEASE, r(2)), Type.MEM),
        Instruction(
            AtomicRmw(AtomicRmwOp.ADD, r(0), r(1), MemoryOrdering.SEQ_CST, r(3)), Type.MEM, Type.INT
        ),
        Instruction(
            AtomicCmpXchg(r(0), s(2), r(1), MemoryOrdering.ACQ_REL, MemoryOrdering.ACQUIRE, r(4)),
            Type.MEM,
            Type.INT,
        ),
        Instruction(Fence(MemoryOrdering.SEQ_CST, r(5)), Type.MEM),
        Instruction(Ret(s(5), r(6)), Type.INT),
    ]
    func = _single_block([Type.ptr(0), Type.INT], insts)
    assert _lines(func)[2:] == [
        "v3, v4 = load.atomic.acquire v1, v0",
        "v5 = store.atomic.release v2, v1, v3",
        "v6, v7 = rmw.add.seqcst v1, v2, v5",
        "v8, v9 = cmpxchg.acqrel.acquire v1, v4, v2, v6",
        "v10 = fence.seqcst v8",
        "ret v9, v10",
    ]


def test_icmp_select_bool_to_int_and_store():
    insts = [
        Instruction(Param(0), Type.INT),
        Instruction(Param(1), Type.INT),
        Instruction(ICmp(ICmpOp.LT, r(0), r(1)), Type.BOOL),
        Instruction(BoolToInt(r(2)), Type.INT),
        Instruction(Store(r(0), r(1), 4, Operand.of(MEM0)), Type.MEM),
        Instruction(Ret(r(3), r(4)), Type.INT),
    ]
    lines = _lines(_single_block([Type.INT, Type.INT], insts))
    assert lines[2] == "v3 = icmp.lt v1, v2"
    assert lines[3] == "v4 = bool_to_int v3"
    assert lines[4] == "v5 = store.4 v1, v2, v0"


def test_symbol_addr_with_and_without_symbols():
    st = SymbolTable()
    sym = st.intern("malloc")
    insts = [
        Instruction(SymbolAddr(sym), Type.ptr(0)),
        Instruction(Ret(None, Operand.of(MEM0)), Type.UNIT),
    ]
    func = _single_block([], insts)
    assert _lines(func, st)[0].endswith("symbol_addr @malloc")
    assert _lines(func)[0].endswith("symbol_addr $0")
    assert _lines(func)[1] == "ret v0"


def test_calls_void_and_non_void():
    mem = Operand.of(MEM0)
    insts = [
        Instruction(Param(0), Type.INT),
        Instruction(SymbolAddr(sym := SymbolTable().intern("f")), Type.ptr(0)),
        Instruction(Call(r(1), (r(0),), mem), Type.MEM, Type.ptr(0)),
        Instruction(Call(r(1), (r(0),), r(2)), Type.MEM),
        Instruction(Ret(s(2), r(3)), Type.INT),
    ]
    assert sym.index == 0
    lines = _lines(_single_block([Type.INT], insts))
    assert lines[2] == "v3, v4 = call v2(v1), v0 -> ptr"
    assert lines[3].endswith("= call v2(v1), v3")


def test_branches_and_nested_region_numbering():
    func = Function(None, [Type.INT], ret_ty=Type.INT)
    func.regions.append(Region(RegionKind.FUNCTION, None, BlockRef(0), [BlockRef(0), RegionRef(1)]))
    func.regions.append(Region(RegionKind.LOOP, RegionRef(0), BlockRef(1), [BlockRef(1)]))
    func.block_args.extend([BlockArg(Type.MEM), BlockArg(Type.INT), BlockArg(Type.INT)])
    func.blocks.append(BasicBlock(RegionRef(0), 0, 1, 0, 4))
    func.blocks.append(BasicBlock(RegionRef(1), 1, 2, 4, 2))
    func.instructions.extend(
        [
            Instruction(Param(0), Type.INT),
            Instruction(Const(1), Type.INT),
            Instruction(Const(1), Type.INT),
            Instruction(Br(BlockRef(1), (r(2), r(1))), Type.UNIT),
            Instruction(ICmp(ICmpOp.LE, Operand.of(ValueRef.block_arg(2)), r(0)), Type.BOOL),
            Instruction(BrIf(r(4), BlockRef(1), (), BlockRef(0), ()), Type.UNIT),
        ]
    )
    numbering = number_values(func)
    assert numbering.name(ValueRef.block_arg(1)) == numbering.name(ValueRef.inst_result(3)) + 1
    lines = [
        format_instruction(func, ValueRef.inst_result(i), func.inst(i), numbering)
        for i in range(6)
    ]
    assert lines[1] == "v2 = iconst 1"
    assert lines[3] == "br bb1(v3, v2)"
    assert lines[5] == "brif v7, bb1, bb0"


def test_continue_without_values():
    insts = [Instruction(Continue(()), Type.UNIT)]
    assert _lines(_single_block([], insts)) == ["continue"]