"""Opaque integer handles for IR entities.

A value handle packs its kind into the top two bits of a 32-bit word:
bit 31 set marks a block argument; otherwise bit 30 set marks the secondary
result of a multi-result instruction, clear the primary result.
"""

from __future__ import annotations

from dataclasses import dataclass

_BLOCK_ARG_BIT = 1 << 31
_SECONDARY_BIT = 1 << 30
_TAG_MASK = _BLOCK_ARG_BIT | _SECONDARY_BIT
_INDEX_MASK = _SECONDARY_BIT - 1


def _check_index(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or index < 0 or index & _TAG_MASK:
        raise ValueError(f"index out of range: {index!r}")
    return index


@dataclass(frozen=True)
class ValueRef:
    """Reference to an instruction result or a block argument."""

    bits: int

    def __post_init__(self) -> None:
        if isinstance(self.bits, bool) or not isinstance(self.bits, int) or not 0 <= self.bits < (1 << 32):
            raise ValueError(f"value encoding out of range: {self.bits!r}")

    @classmethod
    def inst_result(cls, index: int) -> ValueRef:
        """Primary result of the instruction at ``index``."""
        return cls(_check_index(index))

    @classmethod
    def inst_secondary_result(cls, index: int) -> ValueRef:
        """Secondary result of the instruction at ``index``."""
        return cls(_check_index(index) | _SECONDARY_BIT)

    @classmethod
    def block_arg(cls, index: int) -> ValueRef:
        """Block argument at ``index`` in the block-argument arena."""
        return cls(_check_index(index) | _BLOCK_ARG_BIT)

    def is_block_arg(self) -> bool:
        return bool(self.bits & _BLOCK_ARG_BIT)

    def is_secondary_result(self) -> bool:
        return not self.is_block_arg() and bool(self.bits & _SECONDARY_BIT)

    def index(self) -> int:
        """Arena index without tag bits."""
        return self.bits & _INDEX_MASK

    def inst_index(self) -> int:
        """Instruction arena index; only meaningful for instruction results."""
        if self.is_block_arg():
            raise ValueError("inst_index called on a block argument")
        return self.bits & _INDEX_MASK

    def raw(self) -> int:
        """The encoded value, tag bits included."""
        return self.bits


@dataclass(frozen=True, order=True)
class InstRef:
    """Reference to an instruction in the arena."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"negative instruction index {self.index}")


@dataclass(frozen=True, order=True)
class BlockRef:
    """Reference to a basic block."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"negative block index {self.index}")


@dataclass(frozen=True, order=True)
class RegionRef:
    """Reference to a region."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"negative region index {self.index}")