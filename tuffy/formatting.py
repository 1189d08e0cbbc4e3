"""Text rendering of types, annotations, values and single instructions."""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

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
from tuffy.module import SymbolTable
from tuffy.types import Annotation, FpRewriteFlags, Type, TypeKind
from tuffy.value import BlockRef, RegionRef, ValueRef


def format_type(ty: Type) -> str:
    """Render a type, e.g. ``int``, ``f32`` or ``vec<128>``."""
    if ty.kind is TypeKind.FLOAT:
        return ty.param.value
    if ty.kind is TypeKind.VEC:
        vt = ty.param
        return f"vec<vscale x {vt.width}>" if vt.scalable else f"vec<{vt.width}>"
    return ty.kind.value


def format_annotation(ann: Annotation) -> str:
    """Render an annotation as ``:sN`` or ``:uN``."""
    return f":{'s' if ann.is_signed else 'u'}{ann.bits}"


def format_fp_rewrite_flags(flags: FpRewriteFlags) -> str:
    """Render rewrite flags as a suffix such as `` reassoc contract``."""
    parts = [name for name, on in (("reassoc", flags.reassoc), ("contract", flags.contract)) if on]
    return " " + " ".join(parts) if parts else ""


class ValueNumbering:
    """Sequential display numbers for the values of a function."""

    def __init__(self) -> None:
        self._names: Dict[int, int] = {}
        self._next = 0

    def assign(self, value: ValueRef) -> int:
        """Give ``value`` the next number and return it."""
        number = self._next
        self._names[value.raw()] = number
        self._next += 1
        return number

    def name(self, value: ValueRef) -> int:
        """The display number of ``value``."""
        try:
            return self._names[value.raw()]
        except KeyError:
            raise KeyError(f"value {value!r} has no display number") from None

    def format_value(self, value: ValueRef, annotation: Optional[Annotation] = None) -> str:
        """Render ``vN`` with an optional annotation suffix."""
        suffix = format_annotation(annotation) if annotation is not None else ""
        return f"v{self.name(value)}{suffix}"

    def format_operand(self, operand: Operand) -> str:
        return self.format_value(operand.value, operand.annotation)

    def format_operands(self, operands: Iterable[Operand]) -> str:
        return ", ".join(self.format_operand(o) for o in operands)


def _number_region(func: Function, region: RegionRef, numbering: ValueNumbering) -> None:
    for child in func.region(region).children:
        if isinstance(child, RegionRef):
            _number_region(func, child, numbering)
            continue
        for arg in func.block_arg_values(child):
            numbering.assign(arg)
        for value, inst in func.block_insts_with_values(child):
            numbering.assign(value)
            if inst.secondary_ty is not None:
                numbering.assign(ValueRef.inst_secondary_result(value.index()))


def number_values(func: Function) -> ValueNumbering:
    """Number every value in region-tree order.

    Within a block, arguments come before instructions; a secondary result is
    numbered right after its primary result.
    """
    numbering = ValueNumbering()
    _number_region(func, func.root_region, numbering)
    return numbering


def _branch_target(block: BlockRef, args: Sequence[Operand], numbering: ValueNumbering) -> str:
    if not args:
        return f"bb{block.index}"
    return f"bb{block.index}({numbering.format_operands(args)})"


def format_instruction(
    func: Function,
    value: ValueRef,
    inst: Instruction,
    numbering: ValueNumbering,
    symbols: Optional[SymbolTable] = None,
) -> str:
    """Render one instruction without indentation.

    With a symbol table, parameter and symbol names are shown by name;
    without one, by number.
    """
    n = numbering
    opnd = n.format_operand
    v = n.format_value(value, inst.result_annotation)
    multi = ""
    if inst.secondary_ty is not None:
        secondary = ValueRef.inst_secondary_result(value.index())
        multi = f"{n.format_value(value)}, {n.format_value(secondary)}"

    match inst.op:
        case Param(index=idx):
            name = func.param_names[idx] if idx < len(func.param_names) else None
            if name is not None and symbols is not None:
                return f"{v} = param %{symbols.resolve(name)}"
            return f"{v} = param {idx}"
        case IntBinary(opcode=code, a=a, b=b):
            return f"{v} = {code.value} {opnd(a)}, {opnd(b)}"
        case IntUnary(opcode=code, operand=a):
            return f"{v} = {code.value} {opnd(a)}"
        case FloatBinary(opcode=code, a=a, b=b, flags=flags):
            return f"{v} = {code.value}{format_fp_rewrite_flags(flags)} {opnd(a)}, {opnd(b)}"
        case FloatUnary(opcode=code, val=a):
            return f"{v} = {code.value} {opnd(a)}"
        case CopySign(mag=mag, sign=sign):
            return f"{v} = copysign {opnd(mag)}, {opnd(sign)}"
        case Const(value=imm):
            return f"{v} = iconst {imm}"
        case BConst(value=flag):
            return f"{v} = bconst {'true' if flag else 'false'}"
        case ICmp(pred=pred, a=a, b=b):
            return f"{v} = icmp.{pred.value} {opnd(a)}, {opnd(b)}"
        case Select(cond=cond, true_val=tv, false_val=fv):
            return f"{v} = select {opnd(cond)}, {opnd(tv)}, {opnd(fv)}"
        case BoolToInt(val=a):
            return f"{v} = bool_to_int {opnd(a)}"
        case IntToBool(val=a):
            return f"{v} = int_to_bool {opnd(a)}"
        case Load(ptr=ptr, nbytes=nbytes, mem=mem):
            return f"{v} = load.{nbytes} {opnd(ptr)}, {opnd(mem)}"
        case Store(val=val, ptr=ptr, nbytes=nbytes, mem=mem):
            return f"{v} = store.{nbytes} {opnd(val)}, {opnd(ptr)}, {opnd(mem)}"
        case StackSlot(nbytes=nbytes):
            return f"{v} = stack_slot {nbytes}"
        case LoadAtomic(ptr=ptr, ordering=ord_, mem=mem):
            return f"{multi} = load.atomic.{ord_.value} {opnd(ptr)}, {opnd(mem)}"
        case StoreAtomic(val=val, ptr=ptr, ordering=ord_, mem=mem):
            return f"{v} = store.atomic.{ord_.value} {opnd(val)}, {opnd(ptr)}, {opnd(mem)}"
        case AtomicRmw(op=rmw, ptr=ptr, val=val, ordering=ord_, mem=mem):
            return (
                f"{multi} = rmw.{rmw.value}.{ord_.value} "
                f"{opnd(ptr)}, {opnd(val)}, {opnd(mem)}"
            )
        case AtomicCmpXchg(
            ptr=ptr, expected=expected, desired=desired, success=succ, failure=fail, mem=mem
        ):
            return (
                f"{multi} = cmpxchg.{succ.value}.{fail.value} "
                f"{opnd(ptr)}, {opnd(expected)}, {opnd(desired)}, {opnd(mem)}"
            )
        case Fence(ordering=ord_, mem=mem):
            return f"{v} = fence.{ord_.value} {opnd(mem)}"
        case SymbolAddr(symbol=sym):
            name = f"@{symbols.resolve(sym)}" if symbols is not None else f"${sym.index}"
            return f"{v} = symbol_addr {name}"
        case Call(callee=callee, args=args, mem=mem):
            head = f"call {opnd(callee)}({n.format_operands(args)}), {opnd(mem)}"
            if inst.secondary_ty is None:
                return f"{v} = {head}"
            ann = inst.result_annotation
            ret = format_type(inst.secondary_ty) + (format_annotation(ann) if ann else "")
            return f"{multi} = {head} -> {ret}"
        case Bitcast(val=a):
            return f"{v} = bitcast {opnd(a)}"
        case Sext(val=a, bits=bits):
            return f"{v} = sext {opnd(a)}, {bits}"
        case Zext(val=a, bits=bits):
            return f"{v} = zext {opnd(a)}, {bits}"
        case PtrAdd(ptr=ptr, offset=offset):
            return f"{v} = ptradd {opnd(ptr)}, {opnd(offset)}"
        case PtrDiff(a=a, b=b):
            return f"{v} = ptrdiff {opnd(a)}, {opnd(b)}"
        case PtrToInt(ptr=ptr):
            return f"{v} = ptrtoint {opnd(ptr)}"
        case PtrToAddr(ptr=ptr):
            return f"{v} = ptrtoaddr {opnd(ptr)}"
        case IntToPtr(val=a):
            return f"{v} = inttoptr {opnd(a)}"
        case Ret(value=ret_val, mem=mem):
            if ret_val is None:
                return f"ret {opnd(mem)}"
            return f"ret {opnd(ret_val)}, {opnd(mem)}"
        case Br(target=target, args=args):
            return f"br {_branch_target(target, args, n)}"
        case BrIf(cond=cond, then_block=tb, then_args=ta, else_block=eb, else_args=ea):
            return (
                f"brif {opnd(cond)}, {_branch_target(tb, ta, n)}, "
                f"{_branch_target(eb, ea, n)}"
            )
        case Continue(values=vals):
            return f"continue {n.format_operands(vals)}" if vals else "continue"
        case RegionYield(values=vals):
            return f"region_yield {n.format_operands(vals)}" if vals else "region_yield"
        case Unreachable():
            return "unreachable"
        case Trap():
            return "trap"
    raise TypeError(f"cannot format operation {inst.op!r}")