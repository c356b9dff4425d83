"""Pure Python reference implementation of :class:`BackendOperations`."""

from __future__ import annotations

# TENSOR BACKEND IMPLEMENTATION GUIDELINES:
# ----------------------------------------
# 1. VALIDATION:
#    - Arguments are validated by the op functions before a kernel runs
#    - Kernels only compute; they never re-check ranks or axes
#
# 2. REFERENCE SEMANTICS:
#    - Every kernel is a plain sequential loop over the flat row-major buffer
#    - Accumulate in Python floats, store float32
#    - NaN/Inf follow IEEE rules; no Python arithmetic exception escapes
#
# 3. OWNERSHIP:
#    - Results are fresh host tensors; inputs are never mutated
#
# Remember: this backend is the yardstick the accelerated backend is
# compared against, so keep it obvious rather than fast.

import cmath
import math
from typing import Any, Callable, Dict, List, Sequence, Tuple

import numpy as np

from .abstraction import BackendOperations, register_backend
from .axis_util import axes_are_inner_most_dims, combine_locations, compute_out_and_reduce_shapes
from .tensor import ComplexTensor, Tensor, compute_strides, index_to_loc, size_from_shape


def _div(x, y):
    try:
        return x / y
    except ZeroDivisionError:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)


def _maximum(x, y):
    if math.isnan(x) or math.isnan(y):
        return math.nan
    return x if x >= y else y


def _minimum(x, y):
    if math.isnan(x) or math.isnan(y):
        return math.nan
    return x if x <= y else y


def _exp(x):
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def _log(x):
    if x > 0:
        return math.log(x)
    if x == 0:
        return -math.inf
    return math.nan


def _sqrt(x):
    return math.sqrt(x) if x >= 0 else math.nan


def _sigmoid(x):
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    e = _exp(x)
    return e / (1.0 + e)


_BINARY: Dict[str, Callable[[float, float], float]] = {
    "add": lambda x, y: x + y,
    "sub": lambda x, y: x - y,
    "mul": lambda x, y: x * y,
    "div": _div,
    "maximum": _maximum,
    "minimum": _minimum,
}

_UNARY: Dict[str, Callable[[float], float]] = {
    "neg": lambda x: -x,
    "exp": _exp,
    "log": _log,
    "sqrt": _sqrt,
    "abs": abs,
    "relu": lambda x: x if (x > 0 or x != x) else 0.0,
    "sigmoid": _sigmoid,
    "tanh": math.tanh,
}

# op -> (initial accumulator, combine)
_REDUCERS: Dict[str, Tuple[float, Callable[[float, float], float]]] = {
    "sum": (0.0, lambda acc, v: acc + v),
    "prod": (1.0, lambda acc, v: acc * v),
    "max": (-math.inf, _maximum),
    "min": (math.inf, _minimum),
}


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def _twiddle(k: int, n: int, inverse: bool) -> complex:
    sign = 1.0 if inverse else -1.0
    return cmath.exp(complex(0.0, sign * 2.0 * math.pi * k / n))


def _fft_radix2(values: List[complex], inverse: bool) -> List[complex]:
    """Recursive Cooley-Tukey butterfly; ``len(values)`` is a power of two."""
    n = len(values)
    if n == 1:
        return list(values)
    even = _fft_radix2(values[0::2], inverse)
    odd = _fft_radix2(values[1::2], inverse)
    half = n // 2
    out = [0j] * n
    for k in range(half):
        t = _twiddle(k, n, inverse) * odd[k]
        out[k] = even[k] + t
        out[k + half] = even[k] - t
    return out


def _dft_direct(values: List[complex], inverse: bool) -> List[complex]:
    n = len(values)
    out = []
    for k in range(n):
        acc = 0j
        for j, v in enumerate(values):
            acc += v * _twiddle(k * j, n, inverse)
        out.append(acc)
    return out


def fft_row(values: List[complex], inverse: bool = False) -> List[complex]:
    """1D (inverse) DFT of ``values``; the inverse is scaled by ``1/N``."""
    n = len(values)
    if n == 0:
        return []
    if _is_power_of_two(n):
        out = _fft_radix2(values, inverse)
    else:
        out = _dft_direct(values, inverse)
    if inverse:
        out = [v / n for v in out]
    return out


def _host(t: Tensor) -> List[float]:
    return t.data_sync().tolist()


def _make(values: Sequence[float], shape: Sequence[int]) -> Tensor:
    return Tensor(np.asarray(values, dtype=np.float32), shape)


def _flat_index(loc: Sequence[int], strides: Sequence[int]) -> int:
    index = 0
    for l, s in zip(loc, strides):
        index += l * s
    return index


def _broadcast_strides(shape: Sequence[int], out_rank: int) -> List[int]:
    """Strides of ``shape`` aligned to ``out_rank``; broadcast dims get 0."""
    strides = compute_strides(shape)
    lead = out_rank - len(shape)
    aligned = [0] * lead
    for dim, stride in zip(shape, strides):
        aligned.append(0 if dim == 1 else stride)
    return aligned


class PurePythonTensorOperations(BackendOperations):
    name = "cpu"

    def read_(self, t: Tensor) -> np.ndarray:
        return t.data_sync()

    def matmul_(self, a: Tensor, b: Tensor, transpose_a: bool = False, transpose_b: bool = False) -> Tensor:
        av, bv = _host(a), _host(b)
        a_rows, a_cols = a.shape
        b_rows, b_cols = b.shape
        m, k = (a_cols, a_rows) if transpose_a else (a_rows, a_cols)
        n = b_rows if transpose_b else b_cols

        def a_at(i, p):
            return av[p * a_cols + i] if transpose_a else av[i * a_cols + p]

        def b_at(p, j):
            return bv[j * b_cols + p] if transpose_b else bv[p * b_cols + j]

        out = [0.0] * (m * n)
        for i in range(m):
            for j in range(n):
                acc = 0.0
                for p in range(k):
                    acc += a_at(i, p) * b_at(p, j)
                out[i * n + j] = acc
        return _make(out, (m, n))

    def binary_(self, op: str, a: Tensor, b: Tensor, out_shape: Tuple[int, ...]) -> Tensor:
        fn = _BINARY[op]
        av, bv = _host(a), _host(b)
        rank = len(out_shape)
        a_strides = _broadcast_strides(a.shape, rank)
        b_strides = _broadcast_strides(b.shape, rank)
        size = size_from_shape(out_shape)
        out = [0.0] * size
        for i in range(size):
            loc = index_to_loc(i, out_shape)
            out[i] = fn(av[_flat_index(loc, a_strides)], bv[_flat_index(loc, b_strides)])
        return _make(out, out_shape)

    def unary_(self, op: str, x: Tensor) -> Tensor:
        fn = _UNARY[op]
        return _make([fn(v) for v in _host(x)], x.shape)

    def reduce_(self, op: str, x: Tensor, axes: Sequence[int]) -> Tensor:
        init, combine = _REDUCERS[op]
        out_shape, reduce_shape = compute_out_and_reduce_shapes(x.shape, axes)
        out_size = size_from_shape(out_shape)
        reduce_size = size_from_shape(reduce_shape)
        vals = _host(x)
        out = [init] * out_size
        if axes_are_inner_most_dims(axes, x.rank):
            # contiguous trailing block: one flat scan per output element
            for o in range(out_size):
                acc = init
                base = o * reduce_size
                for r in range(reduce_size):
                    acc = combine(acc, vals[base + r])
                out[o] = acc
        else:
            strides = compute_strides(x.shape)
            for o in range(out_size):
                out_loc = index_to_loc(o, out_shape)
                acc = init
                for r in range(reduce_size):
                    loc = combine_locations(out_loc, index_to_loc(r, reduce_shape), axes)
                    acc = combine(acc, vals[_flat_index(loc, strides)])
                out[o] = acc
        return _make(out, out_shape)

    def transpose_(self, x: Tensor, perm: Sequence[int]) -> Tensor:
        vals = _host(x)
        out_shape = tuple(x.shape[p] for p in perm)
        in_strides = compute_strides(x.shape)
        strides = [in_strides[p] for p in perm]
        size = x.size
        out = [0.0] * size
        for i in range(size):
            out[i] = vals[_flat_index(index_to_loc(i, out_shape), strides)]
        return _make(out, out_shape)

    def concat_(self, tensors: Sequence[Tensor], axis: int) -> Tensor:
        first = tensors[0].shape
        outer = size_from_shape(first[:axis])
        chunks = [(size_from_shape(t.shape[axis:]), _host(t)) for t in tensors]
        out: List[float] = []
        for o in range(outer):
            for chunk, vals in chunks:
                out.extend(vals[o * chunk:(o + 1) * chunk])
        out_shape = list(first)
        out_shape[axis] = sum(t.shape[axis] for t in tensors)
        return _make(out, out_shape)

    def slice_(self, x: Tensor, begin: Sequence[int], size: Sequence[int]) -> Tensor:
        vals = _host(x)
        strides = compute_strides(x.shape)
        n = size_from_shape(size)
        out = [0.0] * n
        for i in range(n):
            loc = index_to_loc(i, size)
            out[i] = vals[_flat_index([l + b for l, b in zip(loc, begin)], strides)]
        return _make(out, size)

    def fft_(self, x: ComplexTensor, inverse: bool) -> ComplexTensor:
        re, im = _host(x.real), _host(x.imag)
        n = x.shape[-1]
        batch = x.size // n if n else 0
        out_re = [0.0] * x.size
        out_im = [0.0] * x.size
        for row in range(batch):
            base = row * n
            spectrum = fft_row([complex(re[base + j], im[base + j]) for j in range(n)], inverse)
            for k, v in enumerate(spectrum):
                out_re[base + k] = v.real
                out_im[base + k] = v.imag
        return ComplexTensor(_make(out_re, x.shape), _make(out_im, x.shape))

    def memory_(self) -> Dict[str, Any]:
        return {"num_buffers": 0, "num_bytes": 0, "unreliable": True}


register_backend("cpu", PurePythonTensorOperations)
