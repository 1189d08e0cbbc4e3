"""Instructions, operands and opcodes of the IR."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Tuple

from tuffy.module import SymbolId
from tuffy.types import Annotation, FpRewriteFlags, MemoryOrdering, Type
from tuffy.value import BlockRef, ValueRef


@dataclass(frozen=True)
class Operand:
    """A value reference with an optional use-side annotation."""

    value: ValueRef
    annotation: Optional[Annotation] = None

    @classmethod
    def annotated(cls, value: ValueRef, annotation: Annotation) -> Operand:
        return cls(value, annotation)

    @classmethod
    def of(cls, value: ValueRef | Operand) -> Operand:
        """Wrap a value reference; operands are returned unchanged."""
        if isinstance(value, Operand):
            return value
        return cls(value)


@dataclass(frozen=True)
class Origin:
    """Where an instruction came from, for debug info and profiling."""

    sources: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "sources", tuple(self.sources))

    @classmethod
    def synthetic(cls) -> Origin:
        return cls()

    @classmethod
    def from_source(cls, source_id: int) -> Origin:
        return cls((source_id,))


class ICmpOp(enum.Enum):
    """Integer comparison predicates; signedness lives in operand annotations."""

    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"


class AtomicRmwOp(enum.Enum):
    """Atomic read-modify-write operations."""

    XCHG = "xchg"
    ADD = "add"
    SUB = "sub"
    AND = "and"
    OR = "or"
    XOR = "xor"


class Opcode(enum.Enum):
    """Every instruction opcode, valued by its mnemonic."""

    PARAM = "param"
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    REM = "rem"
    AND = "and"
    OR = "or"
    XOR = "xor"
    SHL = "shl"
    SHR = "shr"
    MIN = "min"
    MAX = "max"
    COUNT_ONES = "count_ones"
    COUNT_LEADING_ZEROS = "count_leading_zeros"
    COUNT_TRAILING_ZEROS = "count_trailing_zeros"
    CONST = "iconst"
    BCONST = "bconst"
    ICMP = "icmp"
    SELECT = "select"
    BOOL_TO_INT = "bool_to_int"
    INT_TO_BOOL = "int_to_bool"
    LOAD = "load"
    STORE = "store"
    STACK_SLOT = "stack_slot"
    LOAD_ATOMIC = "load.atomic"
    STORE_ATOMIC = "store.atomic"
    ATOMIC_RMW = "rmw"
    ATOMIC_CMPXCHG = "cmpxchg"
    FENCE = "fence"
    SYMBOL_ADDR = "symbol_addr"
    CALL = "call"
    BITCAST = "bitcast"
    SEXT = "sext"
    ZEXT = "zext"
    FADD = "fadd"
    FSUB = "fsub"
    FMUL = "fmul"
    FDIV = "fdiv"
    FNEG = "fneg"
    FABS = "fabs"
    COPYSIGN = "copysign"
    PTRADD = "ptradd"
    PTRDIFF = "ptrdiff"
    PTRTOINT = "ptrtoint"
    PTRTOADDR = "ptrtoaddr"
    INTTOPTR = "inttoptr"
    RET = "ret"
    BR = "br"
    BRIF = "brif"
    CONTINUE = "continue"
    REGION_YIELD = "region_yield"
    UNREACHABLE = "unreachable"
    TRAP = "trap"


_INT_BINARY = frozenset(
    {
        Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.DIV, Opcode.REM, Opcode.AND,
        Opcode.OR, Opcode.XOR, Opcode.SHL, Opcode.SHR, Opcode.MIN, Opcode.MAX,
    }
)
_INT_UNARY = frozenset(
    {Opcode.COUNT_ONES, Opcode.COUNT_LEADING_ZEROS, Opcode.COUNT_TRAILING_ZEROS}
)
_FLOAT_BINARY = frozenset({Opcode.FADD, Opcode.FSUB, Opcode.FMUL, Opcode.FDIV})
_FLOAT_UNARY = frozenset({Opcode.FNEG, Opcode.FABS})
_TERMINATORS = frozenset(
    {
        Opcode.RET, Opcode.BR, Opcode.BRIF, Opcode.CONTINUE,
        Opcode.REGION_YIELD, Opcode.UNREACHABLE, Opcode.TRAP,
    }
)


def _freeze(obj: object, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, tuple(getattr(obj, name)))


def _check_opcode(opcode: Opcode, allowed: frozenset, what: str) -> None:
    if opcode not in allowed:
        raise ValueError(f"{opcode!r} is not a {what} opcode")


class Op:
    """Base of all instruction operations."""

    opcode: ClassVar[Opcode]

    def is_terminator(self) -> bool:
        """True for operations that must end a basic block."""
        return self.opcode in _TERMINATORS


@dataclass(frozen=True)
class Param(Op):
    """Function parameter by ABI index."""

    index: int
    opcode: ClassVar[Opcode] = Opcode.PARAM


@dataclass(frozen=True)
class Const(Op):
    """Arbitrary-precision integer constant."""

    value: int
    opcode: ClassVar[Opcode] = Opcode.CONST


@dataclass(frozen=True)
class BConst(Op):
    """Boolean constant."""

    value: bool
    opcode: ClassVar[Opcode] = Opcode.BCONST


@dataclass(frozen=True)
class IntBinary(Op):
    """Integer binary operation (add, sub, ..., min, max)."""

    opcode: Opcode
    a: Operand
    b: Operand

    def __post_init__(self) -> None:
        _check_opcode(self.opcode, _INT_BINARY, "integer binary")


@dataclass(frozen=True)
class IntUnary(Op):
    """Bit counting operation on an integer."""

    opcode: Opcode
    operand: Operand

    def __post_init__(self) -> None:
        _check_opcode(self.opcode, _INT_UNARY, "integer unary")


@dataclass(frozen=True)
class ICmp(Op):
    """Integer comparison producing a Bool."""

    pred: ICmpOp
    a: Operand
    b: Operand
    opcode: ClassVar[Opcode] = Opcode.ICMP


@dataclass(frozen=True)
class Select(Op):
    """``cond ? true_val : false_val``."""

    cond: Operand
    true_val: Operand
    false_val: Operand
    opcode: ClassVar[Opcode] = Opcode.SELECT


@dataclass(frozen=True)
class BoolToInt(Op):
    val: Operand
    opcode: ClassVar[Opcode] = Opcode.BOOL_TO_INT


@dataclass(frozen=True)
class IntToBool(Op):
    val: Operand
    opcode: ClassVar[Opcode] = Opcode.INT_TO_BOOL


@dataclass(frozen=True)
class Load(Op):
    """Load ``nbytes`` bytes from a pointer, consuming a memory token."""

    ptr: Operand
    nbytes: int
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.LOAD


@dataclass(frozen=True)
class Store(Op):
    """Store a value to a pointer, producing a memory token."""

    val: Operand
    ptr: Operand
    nbytes: int
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.STORE


@dataclass(frozen=True)
class StackSlot(Op):
    """Allocate ``nbytes`` bytes on the stack."""

    nbytes: int
    opcode: ClassVar[Opcode] = Opcode.STACK_SLOT


@dataclass(frozen=True)
class LoadAtomic(Op):
    ptr: Operand
    ordering: MemoryOrdering
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.LOAD_ATOMIC


@dataclass(frozen=True)
class StoreAtomic(Op):
    val: Operand
    ptr: Operand
    ordering: MemoryOrdering
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.STORE_ATOMIC


@dataclass(frozen=True)
class AtomicRmw(Op):
    op: AtomicRmwOp
    ptr: Operand
    val: Operand
    ordering: MemoryOrdering
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.ATOMIC_RMW


@dataclass(frozen=True)
class AtomicCmpXchg(Op):
    """Compare-and-exchange; yields the old value."""

    ptr: Operand
    expected: Operand
    desired: Operand
    success: MemoryOrdering
    failure: MemoryOrdering
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.ATOMIC_CMPXCHG


@dataclass(frozen=True)
class Fence(Op):
    ordering: MemoryOrdering
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.FENCE


@dataclass(frozen=True)
class SymbolAddr(Op):
    """Address of a function or static data symbol."""

    symbol: SymbolId
    opcode: ClassVar[Opcode] = Opcode.SYMBOL_ADDR


@dataclass(frozen=True)
class Call(Op):
    callee: Operand
    args: Tuple[Operand, ...]
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.CALL

    def __post_init__(self) -> None:
        _freeze(self, "args")


@dataclass(frozen=True)
class Bitcast(Op):
    val: Operand
    opcode: ClassVar[Opcode] = Opcode.BITCAST


@dataclass(frozen=True)
class Sext(Op):
    val: Operand
    bits: int
    opcode: ClassVar[Opcode] = Opcode.SEXT


@dataclass(frozen=True)
class Zext(Op):
    val: Operand
    bits: int
    opcode: ClassVar[Opcode] = Opcode.ZEXT


@dataclass(frozen=True)
class FloatBinary(Op):
    """Floating point fadd, fsub, fmul or fdiv."""

    opcode: Opcode
    a: Operand
    b: Operand
    flags: FpRewriteFlags = FpRewriteFlags()

    def __post_init__(self) -> None:
        _check_opcode(self.opcode, _FLOAT_BINARY, "float binary")


@dataclass(frozen=True)
class FloatUnary(Op):
    """Floating point fneg or fabs."""

    opcode: Opcode
    val: Operand

    def __post_init__(self) -> None:
        _check_opcode(self.opcode, _FLOAT_UNARY, "float unary")


@dataclass(frozen=True)
class CopySign(Op):
    mag: Operand
    sign: Operand
    opcode: ClassVar[Opcode] = Opcode.COPYSIGN


@dataclass(frozen=True)
class PtrAdd(Op):
    ptr: Operand
    offset: Operand
    opcode: ClassVar[Opcode] = Opcode.PTRADD


@dataclass(frozen=True)
class PtrDiff(Op):
    a: Operand
    b: Operand
    opcode: ClassVar[Opcode] = Opcode.PTRDIFF


@dataclass(frozen=True)
class PtrToInt(Op):
    ptr: Operand
    opcode: ClassVar[Opcode] = Opcode.PTRTOINT


@dataclass(frozen=True)
class PtrToAddr(Op):
    ptr: Operand
    opcode: ClassVar[Opcode] = Opcode.PTRTOADDR


@dataclass(frozen=True)
class IntToPtr(Op):
    val: Operand
    opcode: ClassVar[Opcode] = Opcode.INTTOPTR


@dataclass(frozen=True)
class Ret(Op):
    """Return an optional value together with the final memory token."""

    value: Optional[Operand]
    mem: Operand
    opcode: ClassVar[Opcode] = Opcode.RET


@dataclass(frozen=True)
class Br(Op):
    target: BlockRef
    args: Tuple[Operand, ...] = ()
    opcode: ClassVar[Opcode] = Opcode.BR

    def __post_init__(self) -> None:
        _freeze(self, "args")


@dataclass(frozen=True)
class BrIf(Op):
    cond: Operand
    then_block: BlockRef
    then_args: Tuple[Operand, ...]
    else_block: BlockRef
    else_args: Tuple[Operand, ...]
    opcode: ClassVar[Opcode] = Opcode.BRIF

    def __post_init__(self) -> None:
        _freeze(self, "then_args", "else_args")


@dataclass(frozen=True)
class Continue(Op):
    """Loop backedge carrying values back to the loop header."""

    values: Tuple[Operand, ...] = ()
    opcode: ClassVar[Opcode] = Opcode.CONTINUE

    def __post_init__(self) -> None:
        _freeze(self, "values")


@dataclass(frozen=True)
class RegionYield(Op):
    """Leave the current region with values."""

    values: Tuple[Operand, ...] = ()
    opcode: ClassVar[Opcode] = Opcode.REGION_YIELD

    def __post_init__(self) -> None:
        _freeze(self, "values")


@dataclass(frozen=True)
class Unreachable(Op):
    opcode: ClassVar[Opcode] = Opcode.UNREACHABLE


@dataclass(frozen=True)
class Trap(Op):
    opcode: ClassVar[Opcode] = Opcode.TRAP


@dataclass
class Instruction:
    """An operation with its result type(s), origin and result annotation."""

    op: Op
    ty: Type
    secondary_ty: Optional[Type] = None
    origin: Origin = field(default_factory=Origin.synthetic)
    result_annotation: Optional[Annotation] = None

    def result_count(self) -> int:
        """Number of results: 2 when there is a secondary result, else 1."""
        return 2 if self.secondary_ty is not None else 1