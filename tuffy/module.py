"""Module-level container with an interned symbol table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List

if TYPE_CHECKING:
    from tuffy.function import Function


@dataclass(frozen=True, order=True)
class SymbolId:
    """Interned symbol identifier: an index into a symbol table."""

    index: int


class SymbolTable:
    """Interns names and maps them to :class:`SymbolId`s."""

    def __init__(self) -> None:
        self._names: List[str] = []
        self._lookup: Dict[str, SymbolId] = {}

    def intern(self, name: str) -> SymbolId:
        """Return the id of ``name``, adding it if it is new."""
        existing = self._lookup.get(name)
        if existing is not None:
            return existing
        symbol = SymbolId(len(self._names))
        self._names.append(name)
        self._lookup[name] = symbol
        return symbol

    def resolve(self, symbol: SymbolId) -> str:
        """Return the name behind ``symbol``."""
        if not 0 <= symbol.index < len(self._names):
            raise KeyError(f"unknown symbol {symbol.index}")
        return self._names[symbol.index]

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"SymbolTable({self._names!r})"


@dataclass
class StaticData:
    """A static data blob, emitted in a read-only section."""

    name: SymbolId
    data: bytes


@dataclass
class Module:
    """Top-level IR container owning symbols, functions and static data."""

    name: str
    symbols: SymbolTable = field(default_factory=SymbolTable)
    functions: List[Function] = field(default_factory=list)
    static_data: List[StaticData] = field(default_factory=list)

    def intern(self, name: str) -> SymbolId:
        return self.symbols.intern(name)

    def resolve(self, symbol: SymbolId) -> str:
        return self.symbols.resolve(symbol)

    def add_function(self, func: Function) -> None:
        self.functions.append(func)

    def add_static_data(self, name: SymbolId, data: bytes) -> None:
        self.static_data.append(StaticData(name, bytes(data)))

    def __repr__(self) -> str:
        return (
            f"Module(name={self.name!r}, symbols={self.symbols!r}, "
            f"functions=[{len(self.functions)} functions], "
            f"static_data=[{len(self.static_data)} entries])"
        )