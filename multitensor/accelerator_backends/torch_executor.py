"""PyTorch device executor (CUDA when available, otherwise torch CPU)."""
from __future__ import annotations

import math
from typing import Any, Dict, List, Sequence

import numpy as np

try:
    import torch
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    torch = None  # type: ignore

from .executor import DeviceExecutor, register_executor


class TorchDeviceExecutor(DeviceExecutor):
    name = "torch"

    def __init__(self, device: Any = None) -> None:
        if torch is None:
            raise RuntimeError("TorchDeviceExecutor requires the 'torch' package")
        self.device = torch.device(device or ("cuda" if torch.cuda.is_available() else "cpu"))
        super().__init__()

    def to_device(self, flat: np.ndarray):
        return torch.as_tensor(flat, dtype=torch.float32, device=self.device)

    def to_host(self, value) -> np.ndarray:
        return value.detach().to("cpu").numpy()

    @staticmethod
    def _f32(x):
        return x.to(torch.float32).reshape(-1).contiguous()

    def kernel_matmul(self, arrays: Sequence[Any], p: Dict[str, Any]) -> List[Any]:
        a = arrays[0].reshape(p["a_shape"]).double()
        b = arrays[1].reshape(p["b_shape"]).double()
        if p["transpose_a"]:
            a = a.t()
        if p["transpose_b"]:
            b = b.t()
        return [self._f32(a @ b)]

    def kernel_binary(self, arrays: Sequence[Any], p: Dict[str, Any]) -> List[Any]:
        fn = {
            "add": torch.add,
            "sub": torch.sub,
            "mul": torch.mul,
            "div": torch.div,
            "maximum": torch.maximum,
            "minimum": torch.minimum,
        }[p["op"]]
        a = arrays[0].reshape(p["a_shape"]).double()
        b = arrays[1].reshape(p["b_shape"]).double()
        return [self._f32(fn(a, b).expand(p["out_shape"]))]

    def kernel_unary(self, arrays: Sequence[Any], p: Dict[str, Any]) -> List[Any]:
        fn = {
            "neg": torch.neg,
            "exp": torch.exp,
            "log": torch.log,
            "sqrt": torch.sqrt,
            "abs": torch.abs,
            "relu": torch.relu,
            "sigmoid": torch.sigmoid,
            "tanh": torch.tanh,
        }[p["op"]]
        return [self._f32(fn(arrays[0].double()))]

    def kernel_reduce(self, arrays: Sequence[Any], p: Dict[str, Any]) -> List[Any]:
        x = arrays[0].double().reshape(p["out_size"], p["reduce_size"])
        op = p["op"]
        if op == "sum":
            out = x.sum(dim=1)
        elif op == "prod":
            out = x.prod(dim=1)
        elif p["reduce_size"] == 0:
            fill = -math.inf if op == "max" else math.inf
            out = torch.full((p["out_size"],), fill, dtype=torch.float64, device=self.device)
        elif op == "max":
            out = x.amax(dim=1)
        else:
            out = x.amin(dim=1)
        return [self._f32(out)]

    def kernel_transpose(self, arrays: Sequence[Any], p: Dict[str, Any]) -> List[Any]:
        return [self._f32(arrays[0].reshape(p["shape"]).permute(*p["perm"]))]

    def kernel_concat(self, arrays: Sequence[Any], p: Dict[str, Any]) -> List[Any]:
        parts = [a.reshape(s) for a, s in zip(arrays, p["shapes"])]
        return [self._f32(torch.cat(parts, dim=p["axis"]))]

    def kernel_slice(self, arrays: Sequence[Any], p: Dict[str, Any]) -> List[Any]:
        x = arrays[0].reshape(p["shape"])
        index = tuple(slice(b, b + s) for b, s in zip(p["begin"], p["size"]))
        return [self._f32(x[index])]

    def kernel_fft(self, arrays: Sequence[Any], p: Dict[str, Any]) -> List[Any]:
        n = p["shape"][-1]
        if n == 0:
            return [self._f32(arrays[0]), self._f32(arrays[1])]
        rows = torch.complex(arrays[0].double().reshape(-1, n), arrays[1].double().reshape(-1, n))
        out = torch.fft.ifft(rows, dim=-1) if p["inverse"] else torch.fft.fft(rows, dim=-1)
        return [self._f32(out.real), self._f32(out.imag)]


if torch is not None:
    register_executor("torch", TorchDeviceExecutor)
