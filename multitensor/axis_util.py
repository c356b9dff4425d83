"""Shape/axis algebra for reductions.

A reduction over an arbitrary axis set is normalized to "reduce a contiguous
trailing block" whenever the axes are already innermost; otherwise the
helpers here either produce the permutation that moves them there or map
every (kept, reduced) coordinate pair back to a full coordinate.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidArgument, _Diag


def _check_axes(axes: Sequence[int], rank: int, op: str) -> List[int]:
    axes = [int(a) for a in axes]
    seen = set()
    for a in axes:
        if a < 0 or a >= rank:
            raise InvalidArgument(
                f"{op}: axis {a} out of range for rank {rank}",
                _Diag(op=op, expected=f"axes in [0, {rank})", actual=str(axes)),
            )
        if a in seen:
            raise InvalidArgument(
                f"{op}: duplicate axis {a} in {axes}",
                _Diag(op=op, expected="distinct axes", actual=str(axes)),
            )
        seen.add(a)
    return axes


def axes_are_inner_most_dims(axes: Sequence[int], rank: int) -> bool:
    """Return True iff sorted ``axes`` is exactly ``[rank-k, ..., rank-1]``."""
    ordered = sorted(axes)
    k = len(ordered)
    return ordered == list(range(rank - k, rank))


def assert_axes_are_inner_most_dims(msg: str, axes: Sequence[int], rank: int) -> None:
    if not axes_are_inner_most_dims(axes, rank):
        raise InvalidArgument(
            f"{msg} supports only inner-most axes for now. "
            f"Got axes {list(axes)} and rank-{rank} input."
        )


def combine_locations(out_loc: Sequence[int], reduce_loc: Sequence[int], axes: Sequence[int]) -> List[int]:
    """Rebuild a full coordinate from its kept and reduced parts.

    ``reduce_loc`` entries go to the positions in ``axes`` (ascending), the
    ``out_loc`` entries fill the remaining positions, each group in order.
    """
    rank = len(out_loc) + len(reduce_loc)
    loc: List[int] = []
    out_idx = 0
    reduce_idx = 0
    axis_set = set(axes)
    for dim in range(rank):
        if dim in axis_set:
            loc.append(reduce_loc[reduce_idx])
            reduce_idx += 1
        else:
            loc.append(out_loc[out_idx])
            out_idx += 1
    return loc


def compute_out_and_reduce_shapes(shape: Sequence[int], axes: Sequence[int]) -> Tuple[List[int], List[int]]:
    """Split ``shape`` into ``(out_shape, reduce_shape)`` for ``axes``."""
    axes = _check_axes(axes, len(shape), "compute_out_and_reduce_shapes")
    axis_set = set(axes)
    out_shape = [int(d) for i, d in enumerate(shape) if i not in axis_set]
    reduce_shape = [int(shape[a]) for a in sorted(axes)]
    return out_shape, reduce_shape


def expand_shape_to_keep_dim(shape: Sequence[int], axes: Sequence[int]) -> List[int]:
    """Reinsert a size-1 dim at each (original-rank) position in ``axes``."""
    expanded = [int(d) for d in shape]
    for a in sorted(axes):
        expanded.insert(a, 1)
    return expanded


def get_axes_permutation(axes: Sequence[int], rank: int) -> Optional[List[int]]:
    """Permutation that moves ``axes`` to the end, or None if already there."""
    if axes_are_inner_most_dims(axes, rank):
        return None
    axis_set = set(axes)
    result = [d for d in range(rank) if d not in axis_set]
    result.extend(sorted(axes))
    return result


def get_undo_axes_permutation(axes: Sequence[int]) -> List[int]:
    """Inverse of the permutation ``axes``."""
    return [pair[1] for pair in sorted((a, i) for i, a in enumerate(axes))]


def get_inner_most_axes(num_axes: int, rank: int) -> List[int]:
    return list(range(rank - num_axes, rank))


def parse_axis_param(axis: int | Iterable[int] | None, shape: Sequence[int]) -> List[int]:
    """Normalize ``axis`` (None, int or sequence, negatives allowed)."""
    rank = len(shape)
    if axis is None:
        return list(range(rank))
    if isinstance(axis, int):
        axis = [axis]
    axes = [int(a) for a in axis]
    for a in axes:
        if a < -rank or a >= rank:
            raise InvalidArgument(
                f"All values in axis param must be in range [-{rank}, {rank}) but got axis {axes}"
            )
    return [a + rank if a < 0 else a for a in axes]
