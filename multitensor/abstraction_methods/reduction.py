from __future__ import annotations

from typing import Iterable, Optional, Union

import numpy as np

from ..abstraction import ExecutionContext, resolve_backend
from ..axis_util import compute_out_and_reduce_shapes, expand_shape_to_keep_dim, parse_axis_param
from ..tensor import Tensor, size_from_shape
from ..tensor_util import convert_to_tensor

Axis = Union[int, Iterable[int], None]


def _keep_dims(out: Tensor, axes, keep_dims: bool) -> Tensor:
    if not keep_dims:
        return out
    expanded = out.reshape(expand_shape_to_keep_dim(out.shape, axes))
    out.dispose()
    return expanded


def _reduce(op: str, x, axis: Axis, keep_dims: bool, ctx: Optional[ExecutionContext]) -> Tensor:
    backend = resolve_backend(ctx)
    x = convert_to_tensor(x, "x", op)
    axes = parse_axis_param(axis, x.shape)
    # validates duplicates before any kernel runs
    compute_out_and_reduce_shapes(x.shape, axes)
    return _keep_dims(backend.reduce_(op, x, axes), axes, keep_dims)


def sum(x, axis: Axis = None, keep_dims: bool = False, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Sum over ``axis`` (all axes when None)."""
    return _reduce("sum", x, axis, keep_dims, ctx)


def prod(x, axis: Axis = None, keep_dims: bool = False, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Product over ``axis`` (all axes when None)."""
    return _reduce("prod", x, axis, keep_dims, ctx)


def max(x, axis: Axis = None, keep_dims: bool = False, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Maximum over ``axis``; nan wins, an empty reduction gives -inf."""
    return _reduce("max", x, axis, keep_dims, ctx)


def min(x, axis: Axis = None, keep_dims: bool = False, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Minimum over ``axis``; nan wins, an empty reduction gives +inf."""
    return _reduce("min", x, axis, keep_dims, ctx)


def mean(x, axis: Axis = None, keep_dims: bool = False, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Arithmetic mean over ``axis``: the sum divided by the reduced size."""
    backend = resolve_backend(ctx)
    x = convert_to_tensor(x, "x", "mean")
    axes = parse_axis_param(axis, x.shape)
    _, reduce_shape = compute_out_and_reduce_shapes(x.shape, axes)
    total = backend.reduce_("sum", x, axes)
    count = Tensor(np.array([size_from_shape(reduce_shape)], dtype=np.float32), ())
    try:
        out = backend.binary_("div", total, count, total.shape)
    finally:
        total.dispose()
    return _keep_dims(out, axes, keep_dims)
