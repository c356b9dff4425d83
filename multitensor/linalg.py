from __future__ import annotations

from typing import Optional

from .abstraction import ExecutionContext, resolve_backend
from .errors import InvalidArgument, _Diag
from .tensor import Tensor
from .tensor_util import convert_to_tensor


def matmul(a, b, transpose_a: bool = False, transpose_b: bool = False,
           *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Dense rank-2 matrix product ``op(a) @ op(b)``.

    ``op`` transposes its argument when the matching ``transpose_*`` flag is
    set. Inner dimensions must agree after transposition.
    """
    backend = resolve_backend(ctx)
    a = convert_to_tensor(a, "a", "matmul")
    b = convert_to_tensor(b, "b", "matmul")
    for name, t in (("a", a), ("b", b)):
        if t.rank != 2:
            raise InvalidArgument(
                f"Error in matmul: inputs must be rank 2, got rank {t.rank} for '{name}'.",
                _Diag(op="matmul", tensor=name, expected="rank 2", actual=f"rank {t.rank}"),
            )
    inner_a = a.shape[0] if transpose_a else a.shape[1]
    inner_b = b.shape[1] if transpose_b else b.shape[0]
    if inner_a != inner_b:
        raise InvalidArgument(
            f"Error in matmul: inner shapes ({inner_a}) and ({inner_b}) of Tensors with shapes "
            f"{list(a.shape)} and {list(b.shape)} and transpose_a={transpose_a} and "
            f"transpose_b={transpose_b} must match.",
            _Diag(op="matmul", tensor="b", expected=f"inner dim {inner_a}", actual=str(inner_b)),
        )
    return backend.matmul_(a, b, transpose_a, transpose_b)
