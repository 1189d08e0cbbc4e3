import dataclasses

import pytest

from tuffy.types import (
    Annotation,
    FloatType,
    FpClassMask,
    FpRewriteFlags,
    Type,
    TypeKind,
    VectorType,
)


def test_lane_count_fixed():
    assert VectorType(256).lane_count(64) == 4


@pytest.mark.parametrize("width,elem", [(128, 8), (128, 16), (512, 32), (64, 64)])
def test_lane_count_covers_width(width, elem):
    vt = VectorType(width)
    assert vt.lane_count(elem) * elem == width


def test_base_width_for_fixed_and_scalable():
    assert VectorType(128).base_width() == 128
    assert VectorType(128, scalable=True).base_width() == 128


def test_lane_count_rejects_zero():
    with pytest.raises(ValueError):
        VectorType(128).lane_count(0)


def test_vector_width_must_be_non_negative():
    with pytest.raises(ValueError):
        VectorType(-1)


def test_type_equality_and_hash():
    assert Type.ptr(0) == Type.ptr(0)
    assert len({Type.INT, Type(TypeKind.INT), Type.BOOL}) == 2
    assert (Type.ptr(0) == Type.ptr(1)) is False


def test_constructors_set_kind_and_param():
    assert Type.byte(4) == Type(TypeKind.BYTE, 4)
    assert Type.float(FloatType.F64).param is FloatType.F64
    assert Type.vec(VectorType(128)).kind is TypeKind.VEC


def test_type_repr_matches_debug_form():
    assert repr(Type.ptr(0)) == "Ptr(0)"
    assert repr(Type.float(FloatType.F32)) == "Float(F32)"


@pytest.mark.parametrize(
    "kind,param",
    [
        (TypeKind.INT, 3),
        (TypeKind.BYTE, -1),
        (TypeKind.PTR, None),
        (TypeKind.FLOAT, 32),
        (TypeKind.VEC, 128),
    ],
)
def test_invalid_type_parameters(kind, param):
    with pytest.raises(ValueError):
        Type(kind, param)


def test_fp_class_mask_constants():
    assert FpClassMask() == FpClassMask.NONE
    nan = dataclasses.asdict(FpClassMask.NAN)
    inf = dataclasses.asdict(FpClassMask.INF)
    both = dataclasses.asdict(FpClassMask.NAN_INF)
    assert both == {k: nan[k] or inf[k] for k in both}
    assert sum(nan.values()) == 2


def test_fp_rewrite_flags_default():
    flags = FpRewriteFlags()
    assert (flags.reassoc, flags.contract) == (False, False)


def test_annotations():
    s = Annotation.signed(32)
    u = Annotation.unsigned(32)
    assert s.is_signed and s.bits == 32
    assert not u.is_signed and u.bits == 32
    assert s == Annotation.signed(32)
    assert (s == u) is False


def test_annotation_rejects_negative_width():
    with pytest.raises(ValueError):
        Annotation.signed(-8)