from __future__ import annotations

import numbers
from typing import Any

import numpy as np

from .errors import InvalidArgument, _Diag
from .tensor import Tensor


def _not_tensor_like(x: Any, arg_name: str, function_name: str) -> InvalidArgument:
    kind = type(x).__name__
    return InvalidArgument(
        f"Argument '{arg_name}' passed to '{function_name}' must be a Tensor "
        f"or TensorLike, but got '{kind}'",
        _Diag(op=function_name, tensor=arg_name, expected="Tensor or TensorLike", actual=kind),
    )


def convert_to_tensor(x: Any, arg_name: str, function_name: str) -> Tensor:
    """Return ``x`` as a :class:`Tensor`, coercing numbers, arrays and nested lists.

    Tensors pass through untouched. Anything that is not numeric data of a
    regular (non-ragged) shape is rejected with the argument and function
    names in the message.
    """
    if isinstance(x, Tensor):
        return x
    if isinstance(x, (bool, np.bool_)) or isinstance(x, numbers.Real):
        return Tensor(np.array([x], dtype=np.float32), ())
    if isinstance(x, np.ndarray):
        if x.dtype.kind not in "biuf":
            raise _not_tensor_like(x, arg_name, function_name)
        return Tensor(np.array(x, dtype=np.float32).reshape(-1), x.shape)
    if isinstance(x, (list, tuple)):
        try:
            arr = np.array(x)
        except (TypeError, ValueError):
            raise _not_tensor_like(x, arg_name, function_name) from None
        # strings and objects would otherwise be parsed or cast into floats
        if arr.dtype.kind not in "biuf":
            raise _not_tensor_like(x, arg_name, function_name)
        return Tensor(arr.astype(np.float32).reshape(-1), arr.shape)
    raise _not_tensor_like(x, arg_name, function_name)
