"""Type system of the IR: value types, range annotations and floating-point flags."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar, Union


class FloatType(enum.Enum):
    """Floating point formats."""

    BF16 = "bf16"
    F16 = "f16"
    F32 = "f32"
    F64 = "f64"


@dataclass(frozen=True)
class VectorType:
    """Vector type parameterised by its total bit-width.

    A scalable vector holds ``vscale x width`` bits; a fixed one holds ``width``.
    """

    width: int
    scalable: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.width, bool) or not isinstance(self.width, int) or self.width < 0:
            raise ValueError(f"vector width must be a non-negative integer, got {self.width!r}")

    def base_width(self) -> int:
        """The base width in bits."""
        return self.width

    def lane_count(self, elem_bits: int) -> int:
        """Number of lanes for elements of ``elem_bits`` bits."""
        if elem_bits <= 0:
            raise ValueError(f"element width must be positive, got {elem_bits}")
        return self.width // elem_bits

    def __repr__(self) -> str:
        return f"{'Scalable' if self.scalable else 'Fixed'}({self.width})"


class TypeKind(enum.Enum):
    """The shape of an IR type."""

    INT = "int"
    BOOL = "bool"
    UNIT = "unit"
    BYTE = "byte"
    PTR = "ptr"
    FLOAT = "float"
    VEC = "vec"
    MEM = "mem"


TypeParam = Union[int, FloatType, VectorType, None]

_KIND_NAMES = {
    TypeKind.INT: "Int",
    TypeKind.BOOL: "Bool",
    TypeKind.UNIT: "Unit",
    TypeKind.BYTE: "Byte",
    TypeKind.PTR: "Ptr",
    TypeKind.FLOAT: "Float",
    TypeKind.VEC: "Vec",
    TypeKind.MEM: "Mem",
}


@dataclass(frozen=True)
class Type:
    """An IR type.

    ``Byte`` carries a byte count, ``Ptr`` an address space, ``Float`` a
    :class:`FloatType` and ``Vec`` a :class:`VectorType`; the others carry nothing.
    """

    kind: TypeKind
    param: TypeParam = None

    INT: ClassVar[Type]
    BOOL: ClassVar[Type]
    UNIT: ClassVar[Type]
    MEM: ClassVar[Type]

    def __post_init__(self) -> None:
        kind, param = self.kind, self.param
        if kind in (TypeKind.BYTE, TypeKind.PTR):
            if isinstance(param, bool) or not isinstance(param, int) or param < 0:
                raise ValueError(f"{kind.value} type needs a non-negative integer, got {param!r}")
        elif kind is TypeKind.FLOAT:
            if not isinstance(param, FloatType):
                raise ValueError(f"float type needs a FloatType, got {param!r}")
        elif kind is TypeKind.VEC:
            if not isinstance(param, VectorType):
                raise ValueError(f"vector type needs a VectorType, got {param!r}")
        elif param is not None:
            raise ValueError(f"{kind.value} type takes no parameter, got {param!r}")

    @classmethod
    def byte(cls, n: int) -> Type:
        """Raw memory data of ``n`` bytes."""
        return cls(TypeKind.BYTE, n)

    @classmethod
    def ptr(cls, addr_space: int) -> Type:
        """Pointer in the given address space."""
        return cls(TypeKind.PTR, addr_space)

    @classmethod
    def float(cls, ft: FloatType) -> Type:
        """Floating point type."""
        return cls(TypeKind.FLOAT, ft)

    @classmethod
    def vec(cls, vt: VectorType) -> Type:
        """Vector type."""
        return cls(TypeKind.VEC, vt)

    def __repr__(self) -> str:
        name = _KIND_NAMES[self.kind]
        if self.param is None:
            return name
        if isinstance(self.param, FloatType):
            return f"{name}({self.param.name})"
        return f"{name}({self.param!r})"


Type.INT = Type(TypeKind.INT)
Type.BOOL = Type(TypeKind.BOOL)
Type.UNIT = Type(TypeKind.UNIT)
Type.MEM = Type(TypeKind.MEM)


@dataclass(frozen=True)
class FpClassMask:
    """Excluded IEEE 754 value classes; a set flag means the class is excluded."""

    snan: bool = False
    qnan: bool = False
    ninf: bool = False
    nnorm: bool = False
    nsub: bool = False
    nzero: bool = False
    pzero: bool = False
    psub: bool = False
    pnorm: bool = False
    pinf: bool = False

    NONE: ClassVar[FpClassMask]
    NAN: ClassVar[FpClassMask]
    INF: ClassVar[FpClassMask]
    NAN_INF: ClassVar[FpClassMask]


FpClassMask.NONE = FpClassMask()
FpClassMask.NAN = FpClassMask(snan=True, qnan=True)
FpClassMask.INF = FpClassMask(ninf=True, pinf=True)
FpClassMask.NAN_INF = FpClassMask(snan=True, qnan=True, ninf=True, pinf=True)


@dataclass(frozen=True)
class FpRewriteFlags:
    """Optimisation permissions for floating-point instructions."""

    reassoc: bool = False
    contract: bool = False


class MemoryOrdering(enum.Enum):
    """Memory ordering of atomic operations."""

    RELAXED = "relaxed"
    ACQUIRE = "acquire"
    RELEASE = "release"
    ACQ_REL = "acqrel"
    SEQ_CST = "seqcst"


@dataclass(frozen=True)
class Annotation:
    """Range annotation: signed or unsigned ``bits``-bit integer range."""

    is_signed: bool
    bits: int

    def __post_init__(self) -> None:
        if isinstance(self.bits, bool) or not isinstance(self.bits, int) or self.bits < 0:
            raise ValueError(f"annotation width must be a non-negative integer, got {self.bits!r}")

    @classmethod
    def signed(cls, bits: int) -> Annotation:
        """Value must lie in ``[-2^(bits-1), 2^(bits-1)-1]``."""
        return cls(True, bits)

    @classmethod
    def unsigned(cls, bits: int) -> Annotation:
        """Value must lie in ``[0, 2^bits-1]``."""
        return cls(False, bits)

    def __repr__(self) -> str:
        return f"{'Signed' if self.is_signed else 'Unsigned'}({self.bits})"