import pytest

from tuffy.module import Module, SymbolId, SymbolTable


def test_symbol_table_intern_and_resolve():
    st = SymbolTable()
    id1 = st.intern("malloc")
    id2 = st.intern("free")
    id3 = st.intern("malloc")

    assert id1 == id3
    assert (id1 == id2) is False
    assert st.resolve(id1) == "malloc"
    assert st.resolve(id2) == "free"
    assert len(st) == 2


def test_ids_are_sequential():
    st = SymbolTable()
    ids = [st.intern(name) for name in ("a", "b", "c")]
    assert [s.index for s in ids] == [0, 1, 2]


def test_empty_table_is_falsy():
    st = SymbolTable()
    assert len(st) == 0
    assert not st


def test_resolve_unknown_symbol():
    st = SymbolTable()
    st.intern("x")
    with pytest.raises(KeyError):
        st.resolve(SymbolId(5))
    with pytest.raises(KeyError):
        st.resolve(SymbolId(-1))


def test_module_static_data():
    module = Module("test_module")
    sym = module.intern(".Lstr.0")
    module.add_static_data(sym, b"hello")

    assert len(module.static_data) == 1
    assert module.resolve(module.static_data[0].name) == ".Lstr.0"
    assert module.static_data[0].data == b"hello"


def test_module_interns_into_its_table():
    module = Module("m")
    sym = module.intern("main")
    assert module.intern("main") == sym
    assert module.symbols.resolve(sym) == "main"


def test_add_function_and_repr():
    module = Module("m")
    marker = object()
    module.add_function(marker)
    assert module.functions == [marker]
    assert "[1 functions]" in repr(module)
    assert "[0 entries]" in repr(module)