"""Device executor contract used by the accelerated backend.

An executor owns device-resident buffers and runs named kernels over them.
Kernels see flat arrays plus a parameter dict and return flat arrays of the
declared output sizes. Work is queued on a single FIFO worker, so a kernel
always observes the results of every kernel dispatched before it.
"""
from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..errors import UnknownBackend, UnsupportedOp, UnsupportedRank
from ..logger import get_tensors_logger

logger = get_tensors_logger(__name__)

EXECUTOR_REGISTRY: dict[str, type] = {}


def register_executor(name: str, executor_cls: type) -> None:
    EXECUTOR_REGISTRY[name] = executor_cls


def create_executor(name: str) -> "DeviceExecutor":
    cls = EXECUTOR_REGISTRY.get(name)
    if cls is None:
        raise UnknownBackend(name, EXECUTOR_REGISTRY)
    return cls()


@dataclass(eq=False)
class DeviceBuffer:
    """Handle to a flat float32 buffer living on an executor."""

    buffer_id: int
    size: int
    executor: "DeviceExecutor" = field(repr=False)

    @property
    def nbytes(self) -> int:
        return self.size * 4


# (future producing the kernel outputs, output index or None for uploads)
_Slot = Tuple[Future, Optional[int]]


class DeviceExecutor(ABC):
    """Base executor: buffer bookkeeping plus the FIFO device queue.

    Subclasses provide ``to_device``/``to_host`` and one ``kernel_<op>``
    method per supported op.
    """

    name = "abstract"
    max_fft_rank = 2

    def __init__(self) -> None:
        self._queue = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-device")
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._slots: Dict[int, _Slot] = {}
        self._refs: Dict[int, int] = {}
        self._bytes = 0

    # ---- device-side hooks ----
    @abstractmethod
    def to_device(self, flat: np.ndarray) -> Any:
        ...

    @abstractmethod
    def to_host(self, value: Any) -> np.ndarray:
        ...

    # ---- bookkeeping ----
    def _register(self, fut: Future, index: Optional[int], size: int) -> DeviceBuffer:
        with self._lock:
            buf = DeviceBuffer(next(self._ids), int(size), self)
            self._slots[buf.buffer_id] = (fut, index)
            self._refs[buf.buffer_id] = 1
            self._bytes += buf.nbytes
        return buf

    def _slot(self, buf: DeviceBuffer) -> _Slot:
        with self._lock:
            slot = self._slots.get(buf.buffer_id)
        if slot is None or buf.executor is not self:
            raise ValueError(f"Device buffer {buf.buffer_id} is not live on executor '{self.name}'")
        return slot

    @staticmethod
    def _resolve(slot: _Slot) -> Any:
        fut, index = slot
        value = fut.result()
        return value if index is None else value[index]

    def check_support(self, op: str, params: Dict[str, Any]) -> None:
        if not hasattr(self, f"kernel_{op}"):
            raise UnsupportedOp(op, self.name)
        if op == "fft" and len(params["shape"]) > self.max_fft_rank:
            raise UnsupportedRank("fft", len(params["shape"]), self.max_fft_rank)

    # ---- public contract ----
    def upload(self, flat: np.ndarray) -> DeviceBuffer:
        host = np.array(flat, dtype=np.float32).reshape(-1)
        fut = self._queue.submit(self.to_device, host)
        buf = self._register(fut, None, host.size)
        logger.debug("upload buffer %d (%d values) to %s", buf.buffer_id, buf.size, self.name)
        return buf

    def download(self, buf: DeviceBuffer) -> np.ndarray:
        return np.array(self.to_host(self._resolve(self._slot(buf))), dtype=np.float32).reshape(-1)

    def dispatch(
        self,
        op: str,
        inputs: Sequence[DeviceBuffer],
        params: Dict[str, Any],
        out_sizes: Sequence[int],
    ) -> List[DeviceBuffer]:
        """Queue kernel ``op``; returns pending output buffers immediately."""
        self.check_support(op, params)
        kernel = getattr(self, f"kernel_{op}")
        in_slots = [self._slot(b) for b in inputs]
        fut = self._queue.submit(self._run, kernel, in_slots, params)
        outs = [self._register(fut, i, size) for i, size in enumerate(out_sizes)]
        logger.debug(
            "dispatch %s on %s: in=%s out=%s",
            op, self.name, [b.buffer_id for b in inputs], [b.buffer_id for b in outs],
        )
        return outs

    def _run(self, kernel, in_slots: Sequence[_Slot], params: Dict[str, Any]):
        arrays = [self._resolve(s) for s in in_slots]
        return tuple(kernel(arrays, params))

    def retain(self, buf: DeviceBuffer) -> None:
        with self._lock:
            if buf.buffer_id not in self._refs:
                raise ValueError(f"Device buffer {buf.buffer_id} was already released")
            self._refs[buf.buffer_id] += 1

    def release(self, buf: DeviceBuffer) -> None:
        """Drop one reference; the buffer is freed when none remain.

        Kernels already queued keep their own handle on their inputs, so a
        release never pulls data out from under pending work.
        """
        with self._lock:
            refs = self._refs.get(buf.buffer_id)
            if refs is None:
                logger.warning("release of unknown device buffer %d on %s", buf.buffer_id, self.name)
                return
            if refs > 1:
                self._refs[buf.buffer_id] = refs - 1
                return
            del self._refs[buf.buffer_id]
            del self._slots[buf.buffer_id]
            self._bytes -= buf.nbytes
        logger.debug("release buffer %d on %s", buf.buffer_id, self.name)

    def memory(self) -> Dict[str, Any]:
        with self._lock:
            return {"num_buffers": len(self._slots), "num_bytes": self._bytes, "executor": self.name}

    def shutdown(self) -> None:
        self._queue.shutdown(wait=True)
        with self._lock:
            self._slots.clear()
            self._refs.clear()
            self._bytes = 0
