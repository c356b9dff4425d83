from __future__ import annotations

from typing import List, Optional, Sequence, Union

from ..abstraction import ExecutionContext, resolve_backend
from ..errors import InvalidArgument, _Diag
from ..tensor import Tensor, size_from_shape
from ..tensor_util import convert_to_tensor


def infer_shape(shape: Sequence[int], size: int) -> List[int]:
    """Resolve a single ``-1`` entry in ``shape`` so the product equals ``size``."""
    shape = [int(s) for s in shape]
    implicit = [i for i, s in enumerate(shape) if s == -1]
    if len(implicit) > 1:
        raise InvalidArgument(f"Shapes can only have 1 implicit size. Found -1 at dim {implicit[0]} and dim {implicit[1]}")
    for s in shape:
        if s < -1:
            raise InvalidArgument(f"Shapes can not be < -1. Found {s} in {shape}")
    if implicit:
        known = size_from_shape([s for s in shape if s != -1])
        if known == 0 or size % known != 0:
            raise InvalidArgument(
                f"The implicit shape can't be a fractional number. Got {size} / {known}"
            )
        shape[implicit[0]] = size // known
    if size_from_shape(shape) != size:
        raise InvalidArgument(
            f"Size({size}) must match the product of shape {shape}",
            _Diag(op="reshape", expected=f"{size} values", actual=str(size_from_shape(shape))),
        )
    return shape


def reshape(x, shape: Sequence[int], *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Return ``x`` with a new shape; the buffer is shared, not copied."""
    x = convert_to_tensor(x, "x", "reshape")
    return x.reshape(shape)


def transpose(x, perm: Optional[Sequence[int]] = None, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Permute the dims of ``x``; ``perm`` defaults to reversing them."""
    backend = resolve_backend(ctx)
    x = convert_to_tensor(x, "x", "transpose")
    if perm is None:
        perm = list(range(x.rank - 1, -1, -1))
    perm = [int(p) for p in perm]
    if sorted(perm) != list(range(x.rank)):
        raise InvalidArgument(
            f"Error in transpose: rank of input {x.rank} must match length of perm {perm}.",
            _Diag(op="transpose", tensor="perm", expected=f"a permutation of range({x.rank})", actual=str(perm)),
        )
    return backend.transpose_(x, perm)


def _normalize_axis(axis: int, rank: int, op: str) -> int:
    if axis < -rank or axis >= rank:
        raise InvalidArgument(f"{op}: axis {axis} out of range for rank {rank}")
    return axis + rank if axis < 0 else axis


def concat(tensors: Sequence, axis: int = 0, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Join ``tensors`` along ``axis``; all other dims must agree."""
    backend = resolve_backend(ctx)
    if not isinstance(tensors, (list, tuple)) or len(tensors) == 0:
        raise InvalidArgument("Pass at least one tensor to concat")
    tensors = [convert_to_tensor(t, f"tensors[{i}]", "concat") for i, t in enumerate(tensors)]
    first = tensors[0]
    if first.rank == 0:
        raise InvalidArgument("concat does not support rank-0 tensors")
    axis = _normalize_axis(int(axis), first.rank, "concat")
    for i, t in enumerate(tensors[1:], start=1):
        if t.rank != first.rank:
            raise InvalidArgument(
                f"Error in concat: rank of tensors[{i}] must be the same as the rank of the rest ({first.rank})",
                _Diag(op="concat", tensor=f"tensors[{i}]", expected=f"rank {first.rank}", actual=f"rank {t.rank}"),
            )
        for d in range(first.rank):
            if d != axis and t.shape[d] != first.shape[d]:
                raise InvalidArgument(
                    f"Error in concat: shape of tensors[{i}] ({list(t.shape)}) does not match "
                    f"the shape of the rest ({list(first.shape)}) along the non-concatenated axis {d}."
                )
    return backend.concat_(tensors, axis)


def concat2d(tensors: Sequence, axis: int = 0, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    for i, t in enumerate(tensors):
        t = convert_to_tensor(t, f"tensors[{i}]", "concat2d")
        if t.rank != 2:
            raise InvalidArgument(f"concat2d: tensors[{i}] must be rank 2, got rank {t.rank}")
    return concat(tensors, axis, ctx=ctx)


def slice(x, begin: Union[int, Sequence[int]], size: Union[int, Sequence[int], None] = None,
          *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Extract ``x[begin : begin + size]`` per dim; a size of ``-1`` runs to the end."""
    backend = resolve_backend(ctx)
    x = convert_to_tensor(x, "x", "slice")
    rank = x.rank
    if isinstance(begin, int):
        begin = [begin] + [0] * (rank - 1)
    begin = [int(b) for b in begin] + [0] * (rank - len(begin))
    if size is None:
        size = [-1] * rank
    elif isinstance(size, int):
        size = [size] + [-1] * (rank - 1)
    size = [int(s) for s in size] + [-1] * (rank - len(size))
    if len(begin) != rank or len(size) != rank:
        raise InvalidArgument(f"Error in slice{rank}D: Length of begin {begin} and size {size} must match the rank of the array ({rank}).")
    resolved = []
    for d, (b, s) in enumerate(zip(begin, size)):
        if s == -1:
            s = x.shape[d] - b
        if b < 0 or s < 0 or b + s > x.shape[d]:
            raise InvalidArgument(
                f"Error in slice{rank}D: begin[{d}] + size[{d}] ({b} + {s}) would overflow input.shape[{d}] ({x.shape[d]})",
                _Diag(op="slice", tensor="x", expected=f"0 <= begin <= begin+size <= {x.shape[d]}", actual=f"begin={b}, size={s}"),
            )
        resolved.append(s)
    return backend.slice_(x, begin, resolved)


def split(x, num_or_size_splits: Union[int, Sequence[int]], axis: int = 0,
          *, ctx: Optional[ExecutionContext] = None) -> List[Tensor]:
    """Split ``x`` along ``axis`` into equal parts or parts of the given sizes."""
    backend = resolve_backend(ctx)
    x = convert_to_tensor(x, "x", "split")
    axis = _normalize_axis(int(axis), x.rank, "split")
    dim = x.shape[axis]
    if isinstance(num_or_size_splits, int):
        if num_or_size_splits <= 0 or dim % num_or_size_splits != 0:
            raise InvalidArgument(f"Number of splits must evenly divide the axis ({dim} / {num_or_size_splits}).")
        sizes = [dim // num_or_size_splits] * num_or_size_splits
    else:
        sizes = [int(s) for s in num_or_size_splits]
        if sizes.count(-1) > 1:
            raise InvalidArgument("There should be only one negative value in split array.")
        if -1 in sizes:
            sizes[sizes.index(-1)] = dim - (sum(sizes) + 1)
        if any(s < 0 for s in sizes) or sum(sizes) != dim:
            raise InvalidArgument(
                f"The sum of sizes must match the size of the axis dimension ({sizes} vs {dim}).",
                _Diag(op="split", tensor="num_or_size_splits", expected=f"sum {dim}", actual=str(sum(sizes))),
            )
    begin = [0] * x.rank
    out = []
    for s in sizes:
        size = list(x.shape)
        size[axis] = s
        out.append(backend.slice_(x, list(begin), size))
        begin[axis] += s
    return out
