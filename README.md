# tuffy

Core intermediate representation for the tuffy compiler.

Integers in tuffy IR have infinite precision. Range facts ride on annotations
such as `:s32` and `:u8`. Memory is threaded through the program as explicit
`mem` tokens (MemSSA). Block arguments take the place of PHI nodes, and the
control-flow graph is a tree of single-entry, single-exit regions.

## What is in the package

- `tuffy.types`: `Type`, `TypeKind`, `FloatType`, `VectorType`, `Annotation`,
  `MemoryOrdering`, `FpRewriteFlags` and `FpClassMask`.
- `tuffy.value`: opaque handles `ValueRef`, `BlockRef`, `RegionRef` and `InstRef`.
- `tuffy.instruction`: `Operand`, `Origin`, `ICmpOp`, `AtomicRmwOp`, `Opcode`,
  the operation classes (`IntBinary`, `Load`, `Call`, `Br`, `Ret`, ...) and
  `Instruction`.
- `tuffy.module`: `SymbolTable`, `SymbolId`, `StaticData` and `Module`.
- `tuffy.function`: `Function`, `BasicBlock`, `BlockArg`, `Region` and `RegionKind`.
- `tuffy.builder`: `Builder`, which emits regions, blocks and instructions
  into a `Function`.
- `tuffy.formatting`: rendering of types, annotations and single instructions
  (`format_type`, `format_annotation`, `format_instruction`) and value
  numbering (`ValueNumbering`, `number_values`).
- `tuffy.display`: the text format of whole functions and modules, through
  `format_function`, `format_module` and `format_static_data`.
- `tuffy.checks`: per-instruction type and reference checks, through
  `InstructionChecker`, with errors collected in `VerifyResult` as
  `VerifyError` records carrying a `Location`.

## Example

```python
from tuffy.builder import Builder
from tuffy.checks import InstructionChecker
from tuffy.display import format_function
from tuffy.function import Function, RegionKind
from tuffy.instruction import Origin
from tuffy.module import SymbolTable
from tuffy.types import Type

symbols = SymbolTable()
func = Function(symbols.intern("add"), [Type.INT, Type.INT], ret_ty=Type.INT)
b = Builder(func)

root = b.create_region(RegionKind.FUNCTION)
b.enter_region(root)
entry = b.create_block()
b.switch_to_block(entry)

mem0 = b.add_block_arg(entry, Type.MEM)
x = b.param(0, Type.INT, None, Origin.synthetic())
y = b.param(1, Type.INT, None, Origin.synthetic())
total = b.add(x, y, None, Origin.synthetic())
b.ret(total, mem0, Origin.synthetic())
b.exit_region()

print(format_function(func, symbols))

checker = InstructionChecker(func, "add")
for position, inst in enumerate(func.block_insts(entry)):
    checker.verify_instruction(inst, entry.index, position)
assert checker.result.is_ok()
```

This prints:

```text
func @add(int, int) -> int {
  bb0(v0: mem):
    v1 = param 0
    v2 = param 1
    v3 = add v1, v2
    ret v3, v0
}
```

## Instruction checks

`InstructionChecker.verify_instruction` does not stop at the first problem.
It records every error it finds in its `result`, a `VerifyResult`. Each
`VerifyError` has a location, such as `func @name, bb0, inst 2`, and a
message. Call `VerifyResult.is_ok()` to check that no errors were found, and
turn the result into a string to get a readable report.

## What the package does not do

The checks work one instruction at a time. The package has no whole-function
or whole-module verifier: it does not check that every block ends with a
terminator, that the region tree is well formed, that parameter and return
annotations sit on `int` types, or that a module's function names are unique.
There is no parser for the text format and no command-line tool.

## Running the tests

```
pip install -e .[test]
pytest
```