from __future__ import annotations

from typing import Any, Optional

from ..abstraction import BackendOperations, ExecutionContext, resolve_backend
from ..broadcast_util import assert_and_get_broadcast_shape
from ..tensor import Tensor
from ..tensor_util import convert_to_tensor


def binary_on(backend: BackendOperations, op: str, a: Tensor, b: Tensor) -> Tensor:
    """Run a broadcasting binary kernel on an already resolved backend."""
    out_shape = assert_and_get_broadcast_shape(a.shape, b.shape)
    return backend.binary_(op, a, b, out_shape)


def _binary(op: str, a: Any, b: Any, ctx: Optional[ExecutionContext]) -> Tensor:
    backend = resolve_backend(ctx)
    a = convert_to_tensor(a, "a", op)
    b = convert_to_tensor(b, "b", op)
    return binary_on(backend, op, a, b)


def _unary(op: str, x: Any, ctx: Optional[ExecutionContext]) -> Tensor:
    backend = resolve_backend(ctx)
    x = convert_to_tensor(x, "x", op)
    return backend.unary_(op, x)


def add(a, b, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Elementwise ``a + b`` with broadcasting."""
    return _binary("add", a, b, ctx)


def sub(a, b, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Elementwise ``a - b`` with broadcasting."""
    return _binary("sub", a, b, ctx)


def mul(a, b, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Elementwise ``a * b`` with broadcasting."""
    return _binary("mul", a, b, ctx)


def div(a, b, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Elementwise ``a / b``; division by zero gives inf or nan."""
    return _binary("div", a, b, ctx)


def maximum(a, b, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _binary("maximum", a, b, ctx)


def minimum(a, b, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _binary("minimum", a, b, ctx)


def neg(x, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _unary("neg", x, ctx)


def exp(x, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _unary("exp", x, ctx)


def log(x, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    """Natural log; ``log(0) == -inf`` and negative inputs give nan."""
    return _unary("log", x, ctx)


def sqrt(x, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _unary("sqrt", x, ctx)


def abs(x, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _unary("abs", x, ctx)


def relu(x, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _unary("relu", x, ctx)


def sigmoid(x, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _unary("sigmoid", x, ctx)


def tanh(x, *, ctx: Optional[ExecutionContext] = None) -> Tensor:
    return _unary("tanh", x, ctx)
