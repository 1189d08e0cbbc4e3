"""Incremental construction of a function's IR.

Every emitting method takes an :class:`~tuffy.instruction.Origin`, so each
instruction records where it came from.
"""

from __future__ import annotations

import operator
from typing import List, Optional, Sequence, Tuple, Union

from tuffy.function import BasicBlock, BlockArg, Function, Region, RegionKind
from tuffy.instruction import (
    AtomicCmpXchg,
    AtomicRmw,
    AtomicRmwOp,
    BConst,
    Bitcast,
    BoolToInt,
    Br,
    BrIf,
    Call,
    Const,
    Continue,
    CopySign,
    Fence,
    FloatBinary,
    FloatUnary,
    ICmp,
    ICmpOp,
    Instruction,
    IntBinary,
    IntToBool,
    IntToPtr,
    IntUnary,
    Load,
    LoadAtomic,
    Op,
    Opcode,
    Operand,
    Origin,
    Param,
    PtrAdd,
    PtrDiff,
    PtrToAddr,
    PtrToInt,
    RegionYield,
    Ret,
    Select,
    Sext,
    StackSlot,
    Store,
    StoreAtomic,
    SymbolAddr,
    Trap,
    Unreachable,
    Zext,
)
from tuffy.module import SymbolId
from tuffy.types import Annotation, FpRewriteFlags, MemoryOrdering, Type
from tuffy.value import BlockRef, RegionRef, ValueRef

OperandLike = Union[ValueRef, Operand]


def _opnd(value: OperandLike) -> Operand:
    return Operand.of(value)


def _opnds(values: Sequence[OperandLike]) -> Tuple[Operand, ...]:
    return tuple(Operand.of(v) for v in values)


class Builder:
    """Appends regions, blocks and instructions to a :class:`Function`.

    Operands may be given as plain :class:`ValueRef` values or as
    :class:`Operand` values carrying a use-side annotation.
    """

    def __init__(self, func: Function) -> None:
        self.func = func
        self.current_block: Optional[BlockRef] = None
        self._region_stack: List[RegionRef] = []

    # -- regions --

    def create_region(self, kind: RegionKind) -> RegionRef:
        """Create a region inside the current one (if any); does not enter it."""
        ref = RegionRef(len(self.func.regions))
        parent = self._region_stack[-1] if self._region_stack else None
        self.func.regions.append(Region(kind=kind, parent=parent, entry_block=BlockRef(0)))
        if parent is not None:
            self.func.region(parent).children.append(ref)
        return ref

    def enter_region(self, region: RegionRef) -> None:
        """Make ``region`` the target of subsequently created blocks."""
        self._region_stack.append(region)

    def exit_region(self) -> None:
        """Leave the innermost entered region."""
        if self._region_stack:
            self._region_stack.pop()

    def _current_region(self) -> RegionRef:
        if not self._region_stack:
            raise RuntimeError("no active region")
        return self._region_stack[-1]

    # -- blocks --

    def create_block(self) -> BlockRef:
        """Create a block in the current region; the first one becomes its entry."""
        region_ref = self._current_region()
        ref = BlockRef(len(self.func.blocks))
        self.func.blocks.append(
            BasicBlock(
                parent_region=region_ref,
                arg_start=len(self.func.block_args),
                arg_count=0,
                inst_start=len(self.func.instructions),
                inst_count=0,
            )
        )
        region = self.func.region(region_ref)
        region.children.append(ref)
        if sum(isinstance(c, BlockRef) for c in region.children) == 1:
            region.entry_block = ref
        return ref

    def switch_to_block(self, block: BlockRef) -> None:
        """Direct subsequent instructions into ``block``."""
        bb = self.func.block(block)
        if bb.inst_count == 0:
            bb.inst_start = len(self.func.instructions)
        self.current_block = block

    def value_type(self, value: ValueRef) -> Optional[Type]:
        """Type of an instruction result or block argument, or ``None``."""
        return self.func.value_type(value)

    def add_block_arg(self, block: BlockRef, ty: Type) -> ValueRef:
        """Append an argument of type ``ty`` to ``block``."""
        index = len(self.func.block_args)
        self.func.block_args.append(BlockArg(ty))
        self.func.block(block).arg_count += 1
        return ValueRef.block_arg(index)

    # -- emission --

    def _push(
        self,
        op: Op,
        ty: Type,
        origin: Origin,
        secondary_ty: Optional[Type] = None,
        ann: Optional[Annotation] = None,
    ) -> ValueRef:
        index = len(self.func.instructions)
        self.func.instructions.append(
            Instruction(op=op, ty=ty, secondary_ty=secondary_ty, origin=origin, result_annotation=ann)
        )
        if self.current_block is not None:
            self.func.block(self.current_block).inst_count += 1
        return ValueRef.inst_result(index)

    def _push_pair(
        self, op: Op, ty: Type, origin: Origin, ann: Optional[Annotation] = None
    ) -> Tuple[ValueRef, ValueRef]:
        primary = self._push(op, Type.MEM, origin, secondary_ty=ty, ann=ann)
        return primary, ValueRef.inst_secondary_result(primary.index())

    def _int_binary(self, code: Opcode, a, b, ann, origin) -> ValueRef:
        return self._push(IntBinary(code, _opnd(a), _opnd(b)), Type.INT, origin, ann=ann)

    def param(self, index: int, ty: Type, ann: Optional[Annotation], origin: Origin) -> ValueRef:
        """Reference to function parameter ``index``."""
        return self._push(Param(index), ty, origin, ann=ann)

    def iconst(self, val: int, origin: Origin) -> ValueRef:
        """Integer constant."""
        return self._push(Const(operator.index(val)), Type.INT, origin)

    def bconst(self, val: bool, origin: Origin) -> ValueRef:
        """Boolean constant."""
        return self._push(BConst(bool(val)), Type.BOOL, origin)

    def add(self, a, b, ann, origin) -> ValueRef:
        return self._int_binary(Opcode.ADD, a, b, ann, origin)

    def sub(self, a, b, ann, origin) -> ValueRef:
        return self._int_binary(Opcode.SUB, a, b, ann, origin)

    def mul(self, a, b, ann, origin) -> ValueRef:
        return self._int_binary(Opcode.MUL, a, b, ann, origin)

    def div(self, a, b, ann, origin) -> ValueRef:
        """Integer division; poison on division by zero."""
        return self._int_binary(Opcode.DIV, a, b, ann, origin)

    def rem(self, a, b, ann, origin) -> ValueRef:
        """Integer remainder; poison on division by zero."""
        return self._int_binary(Opcode.REM, a, b, ann, origin)

    def and_(self, a, b, ann, origin) -> ValueRef:
        return self._int_binary(Opcode.AND, a, b, ann, origin)

    def or_(self, a, b, ann, origin) -> ValueRef:
        return self._int_binary(Opcode.OR, a, b, ann, origin)

    def xor(self, a, b, ann, origin) -> ValueRef:
        return self._int_binary(Opcode.XOR, a, b, ann, origin)

    def shl(self, a, b, ann, origin) -> ValueRef:
        """Left shift; poison for a negative shift amount."""
        return self._int_binary(Opcode.SHL, a, b, ann, origin)

    def shr(self, a, b, ann, origin) -> ValueRef:
        """Right shift; signedness comes from operand annotations."""
        return self._int_binary(Opcode.SHR, a, b, ann, origin)

    def min(self, a, b, ann, origin) -> ValueRef:
        return self._int_binary(Opcode.MIN, a, b, ann, origin)

    def max(self, a, b, ann, origin) -> ValueRef:
        return self._int_binary(Opcode.MAX, a, b, ann, origin)

    # -- floating point --

    def _float_binary(self, code, a, b, flags: FpRewriteFlags, ty: Type, origin) -> ValueRef:
        return self._push(FloatBinary(code, _opnd(a), _opnd(b), flags), ty, origin)

    def fadd(self, a, b, flags, ty, origin) -> ValueRef:
        return self._float_binary(Opcode.FADD, a, b, flags, ty, origin)

    def fsub(self, a, b, flags, ty, origin) -> ValueRef:
        return self._float_binary(Opcode.FSUB, a, b, flags, ty, origin)

    def fmul(self, a, b, flags, ty, origin) -> ValueRef:
        return self._float_binary(Opcode.FMUL, a, b, flags, ty, origin)

    def fdiv(self, a, b, flags, ty, origin) -> ValueRef:
        return self._float_binary(Opcode.FDIV, a, b, flags, ty, origin)

    def copysign(self, mag, sign, ty, origin) -> ValueRef:
        """Magnitude of ``mag`` with the sign of ``sign``."""
        return self._push(CopySign(_opnd(mag), _opnd(sign)), ty, origin)

    def fneg(self, val, ty, origin) -> ValueRef:
        return self._push(FloatUnary(Opcode.FNEG, _opnd(val)), ty, origin)

    def fabs(self, val, ty, origin) -> ValueRef:
        return self._push(FloatUnary(Opcode.FABS, _opnd(val)), ty, origin)

    # -- comparison and conversion --

    def icmp(self, op: ICmpOp, a, b, origin) -> ValueRef:
        """Integer comparison producing a Bool."""
        return self._push(ICmp(op, _opnd(a), _opnd(b)), Type.BOOL, origin)

    def select(self, cond, true_val, false_val, ty, origin) -> ValueRef:
        return self._push(Select(_opnd(cond), _opnd(true_val), _opnd(false_val)), ty, origin)

    def bool_to_int(self, val, origin) -> ValueRef:
        return self._push(BoolToInt(_opnd(val)), Type.INT, origin)

    def int_to_bool(self, val, origin) -> ValueRef:
        return self._push(IntToBool(_opnd(val)), Type.BOOL, origin)

    def count_ones(self, val, origin) -> ValueRef:
        return self._push(IntUnary(Opcode.COUNT_ONES, _opnd(val)), Type.INT, origin)

    def count_leading_zeros(self, val, origin) -> ValueRef:
        return self._push(IntUnary(Opcode.COUNT_LEADING_ZEROS, _opnd(val)), Type.INT, origin)

    def count_trailing_zeros(self, val, origin) -> ValueRef:
        return self._push(IntUnary(Opcode.COUNT_TRAILING_ZEROS, _opnd(val)), Type.INT, origin)

    # -- memory --

    def load(self, ptr, nbytes: int, ty: Type, mem, ann, origin) -> ValueRef:
        """Load ``nbytes`` bytes from ``ptr`` under memory token ``mem``."""
        return self._push(Load(_opnd(ptr), nbytes, _opnd(mem)), ty, origin, ann=ann)

    def store(self, val, ptr, nbytes: int, mem, origin) -> ValueRef:
        """Store ``val`` to ``ptr``; returns the new memory token."""
        return self._push(Store(_opnd(val), _opnd(ptr), nbytes, _opnd(mem)), Type.MEM, origin)

    def stack_slot(self, nbytes: int, origin) -> ValueRef:
        return self._push(StackSlot(nbytes), Type.ptr(0), origin)

    def load_atomic(self, ptr, ty: Type, ordering: MemoryOrdering, mem, origin) -> Tuple[ValueRef, ValueRef]:
        """Atomic load; returns ``(mem_out, data)``."""
        return self._push_pair(LoadAtomic(_opnd(ptr), ordering, _opnd(mem)), ty, origin)

    def store_atomic(self, val, ptr, ordering: MemoryOrdering, mem, origin) -> ValueRef:
        """Atomic store; returns the memory token."""
        return self._push(StoreAtomic(_opnd(val), _opnd(ptr), ordering, _opnd(mem)), Type.MEM, origin)

    def atomic_rmw(
        self, op: AtomicRmwOp, ptr, val, ty: Type, ordering: MemoryOrdering, mem, origin
    ) -> Tuple[ValueRef, ValueRef]:
        """Atomic read-modify-write; returns ``(mem_out, old_value)``."""
        return self._push_pair(AtomicRmw(op, _opnd(ptr), _opnd(val), ordering, _opnd(mem)), ty, origin)

    def atomic_cmpxchg(
        self, ptr, expected, desired, ty: Type, success_ord, failure_ord, mem, origin
    ) -> Tuple[ValueRef, ValueRef]:
        """Atomic compare-and-exchange; returns ``(mem_out, old_value)``."""
        op = AtomicCmpXchg(
            _opnd(ptr), _opnd(expected), _opnd(desired), success_ord, failure_ord, _opnd(mem)
        )
        return self._push_pair(op, ty, origin)

    def fence(self, ordering: MemoryOrdering, mem, origin) -> ValueRef:
        return self._push(Fence(ordering, _opnd(mem)), Type.MEM, origin)

    # -- symbols and calls --

    def symbol_addr(self, sym: SymbolId, origin) -> ValueRef:
        """Address of a function or static data symbol."""
        return self._push(SymbolAddr(sym), Type.ptr(0), origin)

    def call(
        self, callee, args, ret_ty: Type, mem, ann, origin
    ) -> Tuple[ValueRef, Optional[ValueRef]]:
        """Call ``callee``; returns ``(mem_out, result)``, result ``None`` for unit calls."""
        op = Call(_opnd(callee), _opnds(args), _opnd(mem))
        if ret_ty == Type.UNIT:
            return self._push(op, Type.MEM, origin), None
        return self._push_pair(op, ret_ty, origin, ann=ann)

    # -- type conversion --

    def bitcast(self, val, ty: Type, ann, origin) -> ValueRef:
        return self._push(Bitcast(_opnd(val)), ty, origin, ann=ann)

    def sext(self, val, bits: int, origin) -> ValueRef:
        return self._push(Sext(_opnd(val), bits), Type.INT, origin)

    def zext(self, val, bits: int, origin) -> ValueRef:
        return self._push(Zext(_opnd(val), bits), Type.INT, origin)

    # -- pointers --

    def ptradd(self, ptr, offset, addr_space: int, origin) -> ValueRef:
        """Pointer plus offset, keeping provenance."""
        return self._push(PtrAdd(_opnd(ptr), _opnd(offset)), Type.ptr(addr_space), origin)

    def ptrdiff(self, a, b, origin) -> ValueRef:
        return self._push(PtrDiff(_opnd(a), _opnd(b)), Type.INT, origin)

    def ptrtoint(self, ptr, origin) -> ValueRef:
        return self._push(PtrToInt(_opnd(ptr)), Type.INT, origin)

    def ptrtoaddr(self, ptr, origin) -> ValueRef:
        return self._push(PtrToAddr(_opnd(ptr)), Type.INT, origin)

    def inttoptr(self, val, addr_space: int, origin) -> ValueRef:
        return self._push(IntToPtr(_opnd(val)), Type.ptr(addr_space), origin)

    # -- terminators --

    def ret(self, val, mem, origin) -> ValueRef:
        """Return ``val`` (or nothing) with final memory token ``mem``."""
        ty = self.func.ret_ty if self.func.ret_ty is not None else Type.UNIT
        value = _opnd(val) if val is not None else None
        return self._push(Ret(value, _opnd(mem)), ty, origin)

    def br(self, target: BlockRef, args, origin) -> ValueRef:
        return self._push(Br(target, _opnds(args)), Type.UNIT, origin)

    def brif(self, cond, then_block: BlockRef, then_args, else_block: BlockRef, else_args, origin) -> ValueRef:
        op = BrIf(_opnd(cond), then_block, _opnds(then_args), else_block, _opnds(else_args))
        return self._push(op, Type.UNIT, origin)

    def continue_(self, values, origin) -> ValueRef:
        """Loop backedge."""
        return self._push(Continue(_opnds(values)), Type.UNIT, origin)

    def region_yield(self, values, origin) -> ValueRef:
        return self._push(RegionYield(_opnds(values)), Type.UNIT, origin)

    def unreachable(self, origin) -> ValueRef:
        return self._push(Unreachable(), Type.UNIT, origin)

    def trap(self, origin) -> ValueRef:
        return self._push(Trap(), Type.UNIT, origin)

    def current_block_is_terminated(self) -> bool:
        """True if the current block already ends with a terminator."""
        if self.current_block is None:
            return False
        bb = self.func.block(self.current_block)
        if bb.inst_count == 0:
            return False
        return self.func.inst(bb.inst_start + bb.inst_count - 1).op.is_terminator()