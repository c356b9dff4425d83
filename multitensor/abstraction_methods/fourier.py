from __future__ import annotations

from typing import Optional

import numpy as np

from ..abstraction import ExecutionContext, resolve_backend
from ..errors import InvalidArgument, _Diag
from ..tensor import ComplexTensor, Tensor
from ..tensor_util import convert_to_tensor


def _check_complex(x, op: str) -> ComplexTensor:
    if not isinstance(x, ComplexTensor):
        raise InvalidArgument(
            f"The dtype for {op}() must be complex64 but got {getattr(x, 'dtype', type(x).__name__)}.",
            _Diag(op=op, tensor="x", expected="complex64", actual=str(getattr(x, "dtype", type(x).__name__))),
        )
    if x.rank == 0:
        raise InvalidArgument(f"{op}() needs an input of rank >= 1, got a scalar.")
    return x


def fft(x: ComplexTensor, *, ctx: Optional[ExecutionContext] = None) -> ComplexTensor:
    """Discrete Fourier transform over the innermost dimension of ``x``.

    Leading dimensions are treated as a batch of independent rows. The
    result has the same shape as ``x``.
    """
    backend = resolve_backend(ctx)
    return backend.fft_(_check_complex(x, "fft"), inverse=False)


def ifft(x: ComplexTensor, *, ctx: Optional[ExecutionContext] = None) -> ComplexTensor:
    """Inverse transform over the innermost dimension, scaled by ``1/N``."""
    backend = resolve_backend(ctx)
    return backend.fft_(_check_complex(x, "ifft"), inverse=True)


def rfft(x, *, ctx: Optional[ExecutionContext] = None) -> ComplexTensor:
    """Transform of real input; keeps the ``N // 2 + 1`` non-redundant bins."""
    backend = resolve_backend(ctx)
    x = convert_to_tensor(x, "x", "rfft")
    if x.rank == 0:
        raise InvalidArgument("rfft() needs an input of rank >= 1, got a scalar.")
    n = x.shape[-1]
    zeros = Tensor(np.zeros(x.size, dtype=np.float32), x.shape)
    spectrum = backend.fft_(ComplexTensor(x, zeros), inverse=False)
    size = list(x.shape[:-1]) + [n // 2 + 1 if n else 0]
    begin = [0] * x.rank
    try:
        real = backend.slice_(spectrum.real, begin, size)
        imag = backend.slice_(spectrum.imag, begin, size)
    finally:
        spectrum.dispose()
    return ComplexTensor(real, imag)
