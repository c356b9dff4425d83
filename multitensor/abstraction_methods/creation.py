from __future__ import annotations

from typing import Any, Optional, Sequence

import numpy as np

from ..errors import InvalidArgument, _Diag
from ..tensor import ComplexTensor, Tensor, TensorBuffer, _check_shape, size_from_shape
from ..tensor_util import convert_to_tensor


def tensor(values: Any, shape: Optional[Sequence[int]] = None) -> Tensor:
    """Host tensor from ``values``; a flat ``values`` may be given an explicit ``shape``."""
    t = convert_to_tensor(values, "values", "tensor")
    if shape is None:
        return t
    shape = _check_shape(shape)
    if t.size != size_from_shape(shape):
        raise InvalidArgument(
            f"Based on the provided shape, {list(shape)}, the tensor should have "
            f"{size_from_shape(shape)} values but has {t.size}",
            _Diag(op="tensor", tensor="values", expected=f"{size_from_shape(shape)} values", actual=str(t.size)),
        )
    return Tensor(t.data_sync(), shape)


def _ranked(values: Any, shape, rank: int, fn: str) -> Tensor:
    if shape is not None and len(shape) != rank:
        raise InvalidArgument(f"{fn}() requires shape to have {rank} values, got {list(shape)}.")
    t = tensor(values, shape)
    if t.rank != rank:
        raise InvalidArgument(
            f"{fn}() requires values to be rank {rank}, got rank {t.rank}. "
            f"Provide a shape or pass nested values of the right depth.",
            _Diag(op=fn, tensor="values", expected=f"rank {rank}", actual=f"rank {t.rank}"),
        )
    return t


def scalar(value: float) -> Tensor:
    return _ranked(value, None, 0, "scalar")


def tensor1d(values: Any) -> Tensor:
    return _ranked(values, None, 1, "tensor1d")


def tensor2d(values: Any, shape: Optional[Sequence[int]] = None) -> Tensor:
    return _ranked(values, shape, 2, "tensor2d")


def tensor3d(values: Any, shape: Optional[Sequence[int]] = None) -> Tensor:
    return _ranked(values, shape, 3, "tensor3d")


def zeros(shape: Sequence[int]) -> Tensor:
    shape = _check_shape(shape)
    return Tensor(np.zeros(size_from_shape(shape), dtype=np.float32), shape)


def ones(shape: Sequence[int]) -> Tensor:
    shape = _check_shape(shape)
    return Tensor(np.ones(size_from_shape(shape), dtype=np.float32), shape)


def zeros_like(x) -> Tensor:
    return zeros(convert_to_tensor(x, "x", "zeros_like").shape)


def complex(real, imag) -> ComplexTensor:
    """Pair ``real`` and ``imag`` into a complex tensor.

    The result holds its own handles on both parts, so disposing it leaves
    the inputs usable.
    """
    real = convert_to_tensor(real, "real", "complex")
    imag = convert_to_tensor(imag, "imag", "complex")
    if real.shape != imag.shape:
        raise InvalidArgument(
            f"real and imag shapes, {real.shape} and {imag.shape}, must match in call to complex",
            _Diag(op="complex", tensor="imag", expected=str(real.shape), actual=str(imag.shape)),
        )
    return ComplexTensor(real.reshape(real.shape), imag.reshape(imag.shape))


def _part(x, fn: str, attr: str) -> Tensor:
    if not isinstance(x, ComplexTensor):
        raise InvalidArgument(f"Argument 'x' passed to '{fn}' must be a complex tensor, got '{type(x).__name__}'")
    part = getattr(x, attr)
    return part.reshape(part.shape)


def real(x: ComplexTensor) -> Tensor:
    return _part(x, "real", "real")


def imag(x: ComplexTensor) -> Tensor:
    return _part(x, "imag", "imag")


def buffer(shape: Sequence[int], values: Any = None) -> TensorBuffer:
    return TensorBuffer(shape, values)


def random_normal(shape: Sequence[int], mean: float = 0.0, stddev: float = 1.0,
                  seed: Optional[int] = None) -> Tensor:
    shape = _check_shape(shape)
    rng = np.random.default_rng(seed)
    values = rng.normal(mean, stddev, size_from_shape(shape)).astype(np.float32)
    return Tensor(values, shape)


def random_uniform(shape: Sequence[int], minval: float = 0.0, maxval: float = 1.0,
                   seed: Optional[int] = None) -> Tensor:
    shape = _check_shape(shape)
    rng = np.random.default_rng(seed)
    values = rng.uniform(minval, maxval, size_from_shape(shape)).astype(np.float32)
    return Tensor(values, shape)
