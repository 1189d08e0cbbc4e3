"""Instruction-level verification: error records and per-instruction type checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from tuffy.function import Function
from tuffy.instruction import (
    AtomicCmpXchg,
    AtomicRmw,
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
    Instruction,
    IntBinary,
    IntToBool,
    IntToPtr,
    IntUnary,
    Load,
    LoadAtomic,
    Operand,
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
from tuffy.types import Annotation, MemoryOrdering, Type, TypeKind
from tuffy.value import BlockRef, RegionRef, ValueRef

_ORDERING_NAMES = {
    MemoryOrdering.RELAXED: "Relaxed",
    MemoryOrdering.ACQUIRE: "Acquire",
    MemoryOrdering.RELEASE: "Release",
    MemoryOrdering.ACQ_REL: "AcqRel",
    MemoryOrdering.SEQ_CST: "SeqCst",
}


def _ordering_name(ordering: MemoryOrdering) -> str:
    return _ORDERING_NAMES[ordering]


@dataclass(frozen=True)
class Location:
    """Where a verification error was found: module, function, block or instruction."""

    func_name: Optional[str] = None
    block_index: Optional[int] = None
    inst_index: Optional[int] = None

    @classmethod
    def module(cls) -> Location:
        return cls()

    @classmethod
    def function(cls, name: str) -> Location:
        return cls(name)

    @classmethod
    def block(cls, name: str, block: int) -> Location:
        return cls(name, block)

    @classmethod
    def instruction(cls, name: str, block: int, inst: int) -> Location:
        return cls(name, block, inst)

    def __str__(self) -> str:
        if self.func_name is None:
            return "module"
        text = f"func @{self.func_name}"
        if self.block_index is not None:
            text += f", bb{self.block_index}"
            if self.inst_index is not None:
                text += f", inst {self.inst_index}"
        return text


@dataclass(frozen=True)
class VerifyError:
    """A single verification error."""

    location: Location
    message: str

    def __str__(self) -> str:
        return f"[{self.location}] {self.message}"


@dataclass
class VerifyResult:
    """All errors collected by a verification run."""

    errors: List[VerifyError] = field(default_factory=list)

    def is_ok(self) -> bool:
        return not self.errors

    def error(self, location: Location, message: str) -> None:
        """Record an error at ``location``."""
        self.errors.append(VerifyError(location, message))

    def __str__(self) -> str:
        if self.is_ok():
            return "verification passed"
        lines = [f"verification failed with {len(self.errors)} error(s):"]
        lines.extend(f"  {e}" for e in self.errors)
        return "\n".join(lines) + "\n"


class InstructionChecker:
    """Type and reference checks for the instructions of one function.

    Errors are appended to :attr:`result` rather than raised.
    """

    def __init__(self, func: Function, func_name: str, result: Optional[VerifyResult] = None) -> None:
        self.func = func
        self.func_name = func_name
        self.result = result if result is not None else VerifyResult()

    # -- locations --

    def _func_loc(self) -> Location:
        return Location.function(self.func_name)

    def _block_loc(self, bi: int) -> Location:
        return Location.block(self.func_name, bi)

    def _inst_loc(self, bi: int, ii: int) -> Location:
        return Location.instruction(self.func_name, bi, ii)

    # -- validity --

    def _is_valid_value(self, value: ValueRef) -> bool:
        if value.is_block_arg():
            return value.index() < len(self.func.block_args)
        return value.index() < len(self.func.instructions)

    def _is_valid_block(self, block: BlockRef) -> bool:
        return block.index < len(self.func.blocks)

    def _is_valid_region(self, region: RegionRef) -> bool:
        return region.index < len(self.func.regions)

    def _value_type(self, value: ValueRef) -> Optional[Type]:
        return self.func.value_type(value)

    # -- operand checks --

    def _check_operand(self, op: Operand, loc: Location) -> None:
        if not self._is_valid_value(op.value):
            tag = "block_arg" if op.value.is_block_arg() else "inst_result"
            self.result.error(loc, f"dangling {tag} reference v{op.value.index()}")

    def _check_operands(self, ops: Sequence[Operand], loc: Location) -> None:
        for op in ops:
            self._check_operand(op, loc)

    def _expect_type(self, op: Operand, expected: Type, ctx: str, loc: Location) -> None:
        ty = self._value_type(op.value)
        if ty is not None and ty != expected:
            self.result.error(loc, f"{ctx}: expected {expected!r}, got {ty!r}")

    def _expect_kind(self, op: Operand, kind: TypeKind, label: str, ctx: str, loc: Location) -> None:
        ty = self._value_type(op.value)
        if ty is not None and ty.kind is not kind:
            self.result.error(loc, f"{ctx}: expected {label}, got {ty!r}")

    def _expect_int(self, op: Operand, ctx: str, loc: Location) -> None:
        self._expect_type(op, Type.INT, ctx, loc)

    def _expect_bool(self, op: Operand, ctx: str, loc: Location) -> None:
        self._expect_type(op, Type.BOOL, ctx, loc)

    def _expect_mem(self, op: Operand, ctx: str, loc: Location) -> None:
        self._expect_type(op, Type.MEM, ctx, loc)

    def _expect_ptr(self, op: Operand, ctx: str, loc: Location) -> None:
        self._expect_kind(op, TypeKind.PTR, "Ptr", ctx, loc)

    def _expect_float(self, op: Operand, ctx: str, loc: Location) -> None:
        self._expect_kind(op, TypeKind.FLOAT, "Float", ctx, loc)

    def _expect_same_type(self, a: Operand, b: Operand, ctx: str, loc: Location) -> None:
        ta, tb = self._value_type(a.value), self._value_type(b.value)
        if ta is not None and tb is not None and ta != tb:
            self.result.error(loc, f"{ctx}: type mismatch {ta!r} vs {tb!r}")

    def _check_branch_target(self, target: BlockRef, args: Sequence[Operand], loc: Location) -> None:
        if not self._is_valid_block(target):
            self.result.error(loc, f"branch target bb{target.index} out of bounds")
            return
        bb = self.func.block(target)
        if len(args) != bb.arg_count:
            self.result.error(
                loc,
                f"branch to bb{target.index} passes {len(args)} args, expected {bb.arg_count}",
            )
        for i, op in enumerate(args):
            self._check_operand(op, loc)
            val_ty = self._value_type(op.value)
            slot = bb.arg_start + i
            if val_ty is None or slot >= len(self.func.block_args):
                continue
            expected = self.func.block_args[slot].ty
            if val_ty != expected:
                self.result.error(
                    loc,
                    f"branch to bb{target.index} arg {i}: expected {expected!r}, got {val_ty!r}",
                )

    def _check_annotation(self, ann: Annotation, ty: Type, ctx: str, loc: Location) -> None:
        if ty != Type.INT:
            self.result.error(loc, f"{ctx}: integer annotation on non-Int type {ty!r}")

    def _expect_result(self, inst: Instruction, expected: Type, what: str, loc: Location) -> None:
        if inst.ty != expected:
            self.result.error(loc, f"{what} result must be {expected!r}, got {inst.ty!r}")

    def _expect_result_kind(self, inst: Instruction, kind: TypeKind, label: str, what: str, loc: Location) -> None:
        if inst.ty.kind is not kind:
            self.result.error(loc, f"{what} result must be {label}, got {inst.ty!r}")

    def _expect_secondary(self, inst: Instruction, what: str, loc: Location) -> None:
        if inst.secondary_ty is None:
            self.result.error(loc, f"{what} must have a secondary result type")

    # -- instruction checks --

    def verify_instruction(self, inst: Instruction, block_index: int, inst_index: int) -> None:
        """Check one instruction, recording every problem found."""
        loc = self._inst_loc(block_index, inst_index)
        if inst.result_annotation is not None:
            self._check_annotation(inst.result_annotation, inst.ty, "result annotation", loc)
        if not self._verify_scalar(inst, loc):
            if not self._verify_memory(inst, loc):
                self._verify_other(inst, loc)

    def _verify_scalar(self, inst: Instruction, loc: Location) -> bool:
        match inst.op:
            case Param(index=idx):
                params = self.func.params
                if idx >= len(params):
                    self.result.error(loc, f"param index {idx} out of bounds ({len(params)} params)")
                elif inst.ty != params[idx]:
                    self.result.error(
                        loc, f"param {idx} type {inst.ty!r} != declared {params[idx]!r}"
                    )
            case IntBinary(a=a, b=b):
                self._check_operand(a, loc)
                self._check_operand(b, loc)
                self._expect_int(a, "int arith lhs", loc)
                self._expect_int(b, "int arith rhs", loc)
                self._expect_result(inst, Type.INT, "int arith", loc)
            case IntUnary(opcode=code, operand=a):
                self._check_operand(a, loc)
                self._expect_int(a, code.value, loc)
                self._expect_result(inst, Type.INT, code.value, loc)
            case Const():
                self._expect_result(inst, Type.INT, "const", loc)
            case BConst():
                self._expect_result(inst, Type.BOOL, "bconst", loc)
            case ICmp(a=a, b=b):
                self._check_operand(a, loc)
                self._check_operand(b, loc)
                self._expect_int(a, "icmp lhs", loc)
                self._expect_int(b, "icmp rhs", loc)
                self._expect_result(inst, Type.BOOL, "icmp", loc)
            case Select(cond=cond, true_val=tv, false_val=fv):
                self._check_operands((cond, tv, fv), loc)
                self._expect_bool(cond, "select cond", loc)
                self._expect_same_type(tv, fv, "select arms", loc)
            case BoolToInt(val=a):
                self._check_operand(a, loc)
                self._expect_bool(a, "bool_to_int", loc)
                self._expect_result(inst, Type.INT, "bool_to_int", loc)
            case IntToBool(val=a):
                self._check_operand(a, loc)
                self._expect_int(a, "int_to_bool", loc)
                self._expect_result(inst, Type.BOOL, "int_to_bool", loc)
            case _:
                return False
        return True

    def _verify_memory(self, inst: Instruction, loc: Location) -> bool:
        match inst.op:
            case Load(ptr=ptr, mem=mem):
                self._check_operands((ptr, mem), loc)
                self._expect_ptr(ptr, "load ptr", loc)
                self._expect_mem(mem, "load mem", loc)
            case Store(val=val, ptr=ptr, mem=mem):
                self._check_operands((val, ptr, mem), loc)
                self._expect_ptr(ptr, "store ptr", loc)
                self._expect_mem(mem, "store mem", loc)
                self._expect_result(inst, Type.MEM, "store", loc)
            case StackSlot():
                self._expect_result_kind(inst, TypeKind.PTR, "Ptr", "stack_slot", loc)
            case LoadAtomic(ptr=ptr, ordering=ordering, mem=mem):
                self._check_operands((ptr, mem), loc)
                self._expect_ptr(ptr, "load.atomic ptr", loc)
                self._expect_mem(mem, "load.atomic mem", loc)
                if ordering in (MemoryOrdering.RELEASE, MemoryOrdering.ACQ_REL):
                    self.result.error(
                        loc, f"load.atomic cannot use {_ordering_name(ordering)} ordering"
                    )
                self._expect_result(inst, Type.MEM, "load.atomic primary", loc)
                self._expect_secondary(inst, "load.atomic", loc)
            case StoreAtomic(val=val, ptr=ptr, ordering=ordering, mem=mem):
                self._check_operands((val, ptr, mem), loc)
                self._expect_ptr(ptr, "store.atomic ptr", loc)
                self._expect_mem(mem, "store.atomic mem", loc)
                if ordering in (MemoryOrdering.ACQUIRE, MemoryOrdering.ACQ_REL):
                    self.result.error(
                        loc, f"store.atomic cannot use {_ordering_name(ordering)} ordering"
                    )
                self._expect_result(inst, Type.MEM, "store.atomic", loc)
            case AtomicRmw(ptr=ptr, val=val, mem=mem):
                self._check_operands((ptr, val, mem), loc)
                self._expect_ptr(ptr, "rmw ptr", loc)
                self._expect_mem(mem, "rmw mem", loc)
                self._expect_result(inst, Type.MEM, "rmw primary", loc)
                self._expect_secondary(inst, "rmw", loc)
            case AtomicCmpXchg(ptr=ptr, expected=expected, desired=desired, failure=fail, mem=mem):
                self._check_operands((ptr, expected, desired, mem), loc)
                self._expect_ptr(ptr, "cmpxchg ptr", loc)
                self._expect_mem(mem, "cmpxchg mem", loc)
                self._expect_same_type(expected, desired, "cmpxchg expected/desired", loc)
                if fail in (MemoryOrdering.RELEASE, MemoryOrdering.ACQ_REL):
                    self.result.error(
                        loc, f"cmpxchg failure ordering cannot be {_ordering_name(fail)}"
                    )
                self._expect_result(inst, Type.MEM, "cmpxchg primary", loc)
                self._expect_secondary(inst, "cmpxchg", loc)
            case Fence(ordering=ordering, mem=mem):
                self._check_operand(mem, loc)
                self._expect_mem(mem, "fence mem", loc)
                if ordering is MemoryOrdering.RELAXED:
                    self.result.error(loc, "fence cannot use Relaxed ordering")
                self._expect_result(inst, Type.MEM, "fence", loc)
            case _:
                return False
        return True

    def _verify_other(self, inst: Instruction, loc: Location) -> None:
        match inst.op:
            case FloatBinary(a=a, b=b):
                self._check_operands((a, b), loc)
                self._expect_float(a, "float arith lhs", loc)
                self._expect_float(b, "float arith rhs", loc)
                self._expect_result_kind(inst, TypeKind.FLOAT, "Float", "float arith", loc)
            case FloatUnary(val=a):
                self._check_operand(a, loc)
                self._expect_float(a, "float unary", loc)
                self._expect_result_kind(inst, TypeKind.FLOAT, "Float", "float unary", loc)
            case CopySign(mag=mag, sign=sign):
                self._check_operands((mag, sign), loc)
                self._expect_float(mag, "copysign mag", loc)
                self._expect_float(sign, "copysign sign", loc)
                self._expect_result_kind(inst, TypeKind.FLOAT, "Float", "copysign", loc)
            case PtrAdd(ptr=ptr, offset=offset):
                self._check_operands((ptr, offset), loc)
                self._expect_ptr(ptr, "ptradd ptr", loc)
                self._expect_int(offset, "ptradd offset", loc)
                self._expect_result_kind(inst, TypeKind.PTR, "Ptr", "ptradd", loc)
            case PtrDiff(a=a, b=b):
                self._check_operands((a, b), loc)
                self._expect_ptr(a, "ptrdiff lhs", loc)
                self._expect_ptr(b, "ptrdiff rhs", loc)
                self._expect_result(inst, Type.INT, "ptrdiff", loc)
            case PtrToInt(ptr=ptr) | PtrToAddr(ptr=ptr):
                self._check_operand(ptr, loc)
                self._expect_ptr(ptr, "ptr-to-int/addr", loc)
                self._expect_result(inst, Type.INT, "ptr-to-int/addr", loc)
            case IntToPtr(val=a):
                self._check_operand(a, loc)
                self._expect_int(a, "inttoptr", loc)
                self._expect_result_kind(inst, TypeKind.PTR, "Ptr", "inttoptr", loc)
            case SymbolAddr():
                self._expect_result_kind(inst, TypeKind.PTR, "Ptr", "symbol_addr", loc)
            case Call(callee=callee, args=args, mem=mem):
                self._check_operand(callee, loc)
                self._check_operands(args, loc)
                self._check_operand(mem, loc)
                self._expect_mem(mem, "call mem", loc)
                self._expect_result(inst, Type.MEM, "call primary", loc)
            case Bitcast(val=a):
                self._check_operand(a, loc)
            case Sext(val=a) | Zext(val=a):
                self._check_operand(a, loc)
                self._expect_result(inst, Type.INT, "sext/zext", loc)
            case Ret(value=value, mem=mem):
                self._check_operand(mem, loc)
                self._expect_mem(mem, "ret mem", loc)
                if value is not None:
                    self._check_operand(value, loc)
                    if self.func.ret_ty is not None:
                        self._expect_type(value, self.func.ret_ty, "ret value", loc)
                elif self.func.ret_ty is not None:
                    self.result.error(loc, "ret without value but function has return type")
            case Br(target=target, args=args):
                self._check_branch_target(target, args, loc)
            case BrIf(cond=cond, then_block=tb, then_args=ta, else_block=eb, else_args=ea):
                self._check_operand(cond, loc)
                self._expect_bool(cond, "brif cond", loc)
                self._check_branch_target(tb, ta, loc)
                self._check_branch_target(eb, ea, loc)
            case Continue(values=values) | RegionYield(values=values):
                self._check_operands(values, loc)
            case Unreachable() | Trap():
                pass
            case _:
                raise TypeError(f"cannot verify operation {inst.op!r}")