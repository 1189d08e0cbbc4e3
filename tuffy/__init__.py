"""Core intermediate representation for the tuffy compiler: types, builder, text format and instruction checks."""

__version__ = "0.1.0"

__all__ = [
    "builder",
    "checks",
    "display",
    "formatting",
    "function",
    "instruction",
    "module",
    "types",
    "value",
]