"""Functions, basic blocks and the hierarchical region tree of the IR.

The control-flow graph is a tree of single-entry, single-exit regions. Each
region holds an ordered sequence of basic blocks and nested regions. Values
defined in an enclosing region may be used directly inside nested ones.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, TypeVar, Union

from tuffy.instruction import Instruction
from tuffy.module import SymbolId
from tuffy.types import Annotation, Type
from tuffy.value import BlockRef, RegionRef, ValueRef

CfgNode = Union[BlockRef, RegionRef]
"""A child of a region: either a basic block or a nested region."""

_T = TypeVar("_T")


@dataclass
class BlockArg:
    """A block argument; block arguments take the place of PHI nodes."""

    ty: Type


@dataclass
class BasicBlock:
    """A run of instructions and block arguments in the function's arenas."""

    parent_region: RegionRef
    arg_start: int = 0
    arg_count: int = 0
    inst_start: int = 0
    inst_count: int = 0


class RegionKind(enum.Enum):
    """Kind of a single-entry, single-exit region."""

    FUNCTION = "function"
    LOOP = "loop"
    PLAIN = "plain"


@dataclass
class Region:
    """A region of the hierarchical CFG."""

    kind: RegionKind
    parent: Optional[RegionRef] = None
    entry_block: BlockRef = BlockRef(0)
    children: List[CfgNode] = field(default_factory=list)


def _fit(items: Sequence[Optional[_T]], length: int) -> List[Optional[_T]]:
    """Truncate or pad with ``None`` to exactly ``length`` entries."""
    fitted: List[Optional[_T]] = list(items)[:length]
    fitted.extend([None] * (length - len(fitted)))
    return fitted


@dataclass
class Function:
    """A function: signature plus arenas of instructions, blocks, regions and block arguments."""

    name: SymbolId
    params: List[Type] = field(default_factory=list)
    param_annotations: List[Optional[Annotation]] = field(default_factory=list)
    param_names: List[Optional[SymbolId]] = field(default_factory=list)
    ret_ty: Optional[Type] = None
    ret_annotation: Optional[Annotation] = None
    instructions: List[Instruction] = field(default_factory=list)
    blocks: List[BasicBlock] = field(default_factory=list)
    regions: List[Region] = field(default_factory=list)
    block_args: List[BlockArg] = field(default_factory=list)
    root_region: RegionRef = RegionRef(0)

    def __post_init__(self) -> None:
        self.params = list(self.params)
        count = len(self.params)
        self.param_annotations = _fit(self.param_annotations, count)
        self.param_names = _fit(self.param_names, count)

    def inst(self, index: int) -> Instruction:
        """The instruction at ``index`` in the arena."""
        return self.instructions[index]

    def block(self, ref: BlockRef) -> BasicBlock:
        return self.blocks[ref.index]

    def region(self, ref: RegionRef) -> Region:
        return self.regions[ref.index]

    def block_insts(self, ref: BlockRef) -> List[Instruction]:
        """The instructions of a block, in order."""
        bb = self.block(ref)
        return self.instructions[bb.inst_start : bb.inst_start + bb.inst_count]

    def entry_block(self) -> BlockRef:
        """Entry block of the root region."""
        return self.region(self.root_region).entry_block

    def block_arguments(self, ref: BlockRef) -> List[BlockArg]:
        """The arguments of a block, in order."""
        bb = self.block(ref)
        return self.block_args[bb.arg_start : bb.arg_start + bb.arg_count]

    def block_arg_values(self, ref: BlockRef) -> List[ValueRef]:
        """Value references of a block's arguments."""
        bb = self.block(ref)
        return [ValueRef.block_arg(bb.arg_start + i) for i in range(bb.arg_count)]

    def block_insts_with_values(self, ref: BlockRef) -> Iterator[Tuple[ValueRef, Instruction]]:
        """Yield each instruction of a block with the reference to its primary result."""
        start = self.block(ref).inst_start
        for offset, inst in enumerate(self.block_insts(ref)):
            yield ValueRef.inst_result(start + offset), inst

    def value_type(self, value: ValueRef) -> Optional[Type]:
        """Type of a block argument or instruction result; ``None`` if unknown."""
        if value.is_block_arg():
            index = value.index()
            return self.block_args[index].ty if index < len(self.block_args) else None
        index = value.index()
        if index >= len(self.instructions):
            return None
        inst = self.instructions[index]
        return inst.secondary_ty if value.is_secondary_result() else inst.ty