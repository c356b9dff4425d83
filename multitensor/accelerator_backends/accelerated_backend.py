"""Accelerated backend: routes every kernel through a device executor."""
from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from ..abstraction import BackendOperations, register_backend
from ..axis_util import compute_out_and_reduce_shapes, get_axes_permutation, get_inner_most_axes
from ..faculty import detect_executor
from ..logger import get_tensors_logger
from ..tensor import ComplexTensor, Tensor, size_from_shape
from .executor import DeviceBuffer, DeviceExecutor, create_executor

logger = get_tensors_logger(__name__)


class AcceleratorTensorOperations(BackendOperations):
    """Results stay device resident until read; callers must ``dispose()`` them."""

    name = "accelerated"

    def __init__(self, executor: DeviceExecutor | None = None):
        self.executor = executor or create_executor(detect_executor())
        logger.debug("accelerated backend using executor %r", self.executor.name)

    @property
    def max_fft_rank(self) -> int:
        return self.executor.max_fft_rank

    # ---- transfers ----
    def _on_device(self, t: Tensor) -> Tuple[DeviceBuffer, bool]:
        """Device buffer for ``t`` and whether it is a temporary upload."""
        t._ensure_live()
        buf = t.device_buffer
        if buf is not None and buf.executor is self.executor:
            return buf, False
        return self.executor.upload(t.data_sync()), True

    def _run(
        self,
        op: str,
        inputs: Sequence[Tensor],
        params: Dict[str, Any],
        out_shapes: Sequence[Sequence[int]],
    ) -> List[Tensor]:
        staged: List[Tuple[DeviceBuffer, bool]] = []
        try:
            for t in inputs:
                staged.append(self._on_device(t))
            outs = self.executor.dispatch(
                op, [b for b, _ in staged], params, [size_from_shape(s) for s in out_shapes]
            )
        finally:
            for buf, temporary in staged:
                if temporary:
                    self.executor.release(buf)
        return [Tensor(shape=s, device_buffer=b, owner=self) for s, b in zip(out_shapes, outs)]

    def read_(self, t: Tensor) -> np.ndarray:
        return self.executor.download(t.device_buffer)

    # ---- kernels ----
    def matmul_(self, a: Tensor, b: Tensor, transpose_a: bool = False, transpose_b: bool = False) -> Tensor:
        m = a.shape[1] if transpose_a else a.shape[0]
        n = b.shape[0] if transpose_b else b.shape[1]
        params = {
            "a_shape": a.shape,
            "b_shape": b.shape,
            "transpose_a": transpose_a,
            "transpose_b": transpose_b,
        }
        return self._run("matmul", [a, b], params, [(m, n)])[0]

    def binary_(self, op: str, a: Tensor, b: Tensor, out_shape: Tuple[int, ...]) -> Tensor:
        params = {"op": op, "a_shape": a.shape, "b_shape": b.shape, "out_shape": tuple(out_shape)}
        return self._run("binary", [a, b], params, [out_shape])[0]

    def unary_(self, op: str, x: Tensor) -> Tensor:
        return self._run("unary", [x], {"op": op}, [x.shape])[0]

    def reduce_(self, op: str, x: Tensor, axes: Sequence[int]) -> Tensor:
        # move reduced axes innermost so the kernel sees [out_size, reduce_size] rows
        perm = get_axes_permutation(axes, x.rank)
        src = x
        if perm is not None:
            src = self.transpose_(x, perm)
            axes = get_inner_most_axes(len(axes), x.rank)
        try:
            out_shape, reduce_shape = compute_out_and_reduce_shapes(src.shape, axes)
            params = {
                "op": op,
                "out_size": size_from_shape(out_shape),
                "reduce_size": size_from_shape(reduce_shape),
            }
            return self._run("reduce", [src], params, [out_shape])[0]
        finally:
            if perm is not None:
                src.dispose()

    def transpose_(self, x: Tensor, perm: Sequence[int]) -> Tensor:
        out_shape = tuple(x.shape[p] for p in perm)
        return self._run("transpose", [x], {"shape": x.shape, "perm": tuple(perm)}, [out_shape])[0]

    def concat_(self, tensors: Sequence[Tensor], axis: int) -> Tensor:
        out_shape = list(tensors[0].shape)
        out_shape[axis] = sum(t.shape[axis] for t in tensors)
        params = {"shapes": [t.shape for t in tensors], "axis": axis}
        return self._run("concat", tensors, params, [out_shape])[0]

    def slice_(self, x: Tensor, begin: Sequence[int], size: Sequence[int]) -> Tensor:
        params = {"shape": x.shape, "begin": tuple(begin), "size": tuple(size)}
        return self._run("slice", [x], params, [size])[0]

    def fft_(self, x: ComplexTensor, inverse: bool) -> ComplexTensor:
        params = {"shape": x.shape, "inverse": inverse}
        re, im = self._run("fft", [x.real, x.imag], params, [x.shape, x.shape])
        return ComplexTensor(re, im)

    # ---- resources ----
    def dispose_(self, t: Tensor) -> None:
        if t.device_buffer is not None and t.device_buffer.executor is self.executor:
            self.executor.release(t.device_buffer)

    def memory_(self) -> Dict[str, Any]:
        return self.executor.memory()

    def shutdown(self) -> None:
        self.executor.shutdown()


register_backend("accelerated", AcceleratorTensorOperations)
