"""Text form of functions, static data and whole modules.

A function renders as::

    func @name(%a: int:s32, %b: int:s32) -> int:s32 {
      bb0(v0: mem):
        v1:s32 = param %a
        ...
    }

Without a symbol table, names fall back to raw symbol numbers (``$N``)
and parameters to their indices.
"""

from __future__ import annotations

from typing import List, Optional

from tuffy.formatting import (
    ValueNumbering,
    format_annotation,
    format_instruction,
    format_type,
    number_values,
)
from tuffy.function import Function
from tuffy.module import Module, SymbolTable
from tuffy.value import BlockRef, RegionRef


def _block_header(func: Function, ref: BlockRef, numbering: ValueNumbering) -> str:
    args = [
        f"{numbering.format_value(value)}: {format_type(arg.ty)}"
        for value, arg in zip(func.block_arg_values(ref), func.block_arguments(ref))
    ]
    if not args:
        return f"bb{ref.index}:"
    return f"bb{ref.index}({', '.join(args)}):"


def _block_lines(
    func: Function,
    ref: BlockRef,
    numbering: ValueNumbering,
    symbols: Optional[SymbolTable],
    indent: int,
) -> List[str]:
    pad = " " * indent
    inst_pad = " " * (indent + 2)
    lines = [pad + _block_header(func, ref, numbering)]
    lines.extend(
        inst_pad + format_instruction(func, value, inst, numbering, symbols)
        for value, inst in func.block_insts_with_values(ref)
    )
    return lines


def _children_lines(
    func: Function,
    ref: RegionRef,
    numbering: ValueNumbering,
    symbols: Optional[SymbolTable],
    indent: int,
) -> List[str]:
    lines: List[str] = []
    for position, child in enumerate(func.region(ref).children):
        if position:
            lines.append("")
        if isinstance(child, RegionRef):
            lines.extend(_region_lines(func, child, numbering, symbols, indent))
        else:
            lines.extend(_block_lines(func, child, numbering, symbols, indent))
    return lines


def _region_lines(
    func: Function,
    ref: RegionRef,
    numbering: ValueNumbering,
    symbols: Optional[SymbolTable],
    indent: int,
) -> List[str]:
    pad = " " * indent
    lines = [f"{pad}region {func.region(ref).kind.value} {{"]
    lines.extend(_children_lines(func, ref, numbering, symbols, indent + 2))
    lines.append(f"{pad}}}")
    return lines


def _signature(func: Function, symbols: Optional[SymbolTable]) -> str:
    params = []
    for index, (ty, ann) in enumerate(zip(func.params, func.param_annotations)):
        text = format_type(ty) + (format_annotation(ann) if ann is not None else "")
        name = func.param_names[index] if index < len(func.param_names) else None
        if name is not None and symbols is not None:
            text = f"%{symbols.resolve(name)}: {text}"
        params.append(text)
    name_str = f"@{symbols.resolve(func.name)}" if symbols is not None else f"${func.name.index}"
    signature = f"func {name_str}({', '.join(params)})"
    if func.ret_ty is not None:
        signature += f" -> {format_type(func.ret_ty)}"
        if func.ret_annotation is not None:
            signature += format_annotation(func.ret_annotation)
    return signature


def format_function(func: Function, symbols: Optional[SymbolTable] = None) -> str:
    """Render a function; the root function region's wrapper is elided."""
    numbering = number_values(func)
    body = _children_lines(func, func.root_region, numbering, symbols, 2)
    return _signature(func, symbols) + " {\n" + "".join(line + "\n" for line in body) + "}"


_ESCAPES = {
    ord("\\"): "\\\\",
    ord('"'): '\\"',
    ord("\n"): "\\n",
    ord("\r"): "\\r",
    ord("\t"): "\\t",
    0: "\\0",
}


def _escape_byte(byte: int) -> str:
    escaped = _ESCAPES.get(byte)
    if escaped is not None:
        return escaped
    if 0x20 <= byte <= 0x7E:
        return chr(byte)
    return f"\\x{byte:02x}"


def format_static_data(name: str, data: bytes) -> str:
    """Render ``data @name = "..."`` with printable bytes kept and others escaped."""
    return f'data @{name} = "' + "".join(_escape_byte(b) for b in bytes(data)) + '"'


def format_module(module: Module) -> str:
    """Render all static data, then all functions, with names resolved."""
    parts = [
        format_static_data(module.resolve(entry.name), entry.data) for entry in module.static_data
    ]
    text = "\n".join(parts)
    for index, func in enumerate(module.functions):
        if index > 0 or module.static_data:
            text += "\n\n"
        text += format_function(func, module.symbols)
    return text