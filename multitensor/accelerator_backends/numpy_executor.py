"""In-process device executor running vectorized NumPy kernels."""
from __future__ import annotations

from typing import Any, Dict, List, Sequence

import numpy as np

from .executor import DeviceExecutor, register_executor

_BINARY = {
    "add": np.add,
    "sub": np.subtract,
    "mul": np.multiply,
    "div": np.divide,
    "maximum": np.maximum,
    "minimum": np.minimum,
}

_UNARY = {
    "neg": np.negative,
    "exp": np.exp,
    "log": np.log,
    "sqrt": np.sqrt,
    "abs": np.abs,
    "relu": lambda x: np.maximum(x, 0.0),
    "sigmoid": lambda x: 0.5 * (1.0 + np.tanh(0.5 * x)),
    "tanh": np.tanh,
}

_REDUCE = {
    "sum": lambda x: np.sum(x, axis=1),
    "prod": lambda x: np.prod(x, axis=1),
    "max": lambda x: np.max(x, axis=1, initial=-np.inf),
    "min": lambda x: np.min(x, axis=1, initial=np.inf),
}


def _f32(x: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(x, dtype=np.float32).reshape(-1)


class NumPyDeviceExecutor(DeviceExecutor):
    name = "numpy"

    def to_device(self, flat: np.ndarray) -> np.ndarray:
        return flat

    def to_host(self, value: np.ndarray) -> np.ndarray:
        return value

    # ---- kernels: flat float32 arrays in, flat float32 arrays out ----
    def kernel_matmul(self, arrays: Sequence[np.ndarray], p: Dict[str, Any]) -> List[np.ndarray]:
        a = arrays[0].reshape(p["a_shape"]).astype(np.float64)
        b = arrays[1].reshape(p["b_shape"]).astype(np.float64)
        if p["transpose_a"]:
            a = a.T
        if p["transpose_b"]:
            b = b.T
        return [_f32(a @ b)]

    def kernel_binary(self, arrays: Sequence[np.ndarray], p: Dict[str, Any]) -> List[np.ndarray]:
        a = arrays[0].reshape(p["a_shape"]).astype(np.float64)
        b = arrays[1].reshape(p["b_shape"]).astype(np.float64)
        with np.errstate(all="ignore"):
            out = _BINARY[p["op"]](a, b)
        return [_f32(np.broadcast_to(out, p["out_shape"]))]

    def kernel_unary(self, arrays: Sequence[np.ndarray], p: Dict[str, Any]) -> List[np.ndarray]:
        with np.errstate(all="ignore"):
            return [_f32(_UNARY[p["op"]](arrays[0].astype(np.float64)))]

    def kernel_reduce(self, arrays: Sequence[np.ndarray], p: Dict[str, Any]) -> List[np.ndarray]:
        x = arrays[0].astype(np.float64).reshape(p["out_size"], p["reduce_size"])
        with np.errstate(all="ignore"):
            return [_f32(_REDUCE[p["op"]](x))]

    def kernel_transpose(self, arrays: Sequence[np.ndarray], p: Dict[str, Any]) -> List[np.ndarray]:
        return [_f32(np.transpose(arrays[0].reshape(p["shape"]), p["perm"]))]

    def kernel_concat(self, arrays: Sequence[np.ndarray], p: Dict[str, Any]) -> List[np.ndarray]:
        parts = [a.reshape(s) for a, s in zip(arrays, p["shapes"])]
        return [_f32(np.concatenate(parts, axis=p["axis"]))]

    def kernel_slice(self, arrays: Sequence[np.ndarray], p: Dict[str, Any]) -> List[np.ndarray]:
        x = arrays[0].reshape(p["shape"])
        index = tuple(slice(b, b + s) for b, s in zip(p["begin"], p["size"]))
        return [_f32(x[index])]

    def kernel_fft(self, arrays: Sequence[np.ndarray], p: Dict[str, Any]) -> List[np.ndarray]:
        shape = p["shape"]
        n = shape[-1]
        if n == 0:
            return [_f32(arrays[0]), _f32(arrays[1])]
        rows = arrays[0].astype(np.float64).reshape(-1, n) + 1j * arrays[1].astype(np.float64).reshape(-1, n)
        out = np.fft.ifft(rows, axis=-1) if p["inverse"] else np.fft.fft(rows, axis=-1)
        return [_f32(out.real), _f32(out.imag)]


register_executor("numpy", NumPyDeviceExecutor)
