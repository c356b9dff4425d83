"""Backend registry, capability interface and execution context."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidArgument, UnknownBackend
from .faculty import detect_backend
from .logger import get_tensors_logger
from .tensor import ComplexTensor, Tensor

logger = get_tensors_logger(__name__)


# --- Backend Registry Pattern ---
# Each backend module registers itself here at import time, avoiding all circular imports.
BACKEND_REGISTRY: dict[str, type] = {}


def register_backend(name: str, backend_cls: type) -> None:
    """
    Register a tensor backend class under a given name.
    Backends should call this after their class definition.
    """
    BACKEND_REGISTRY[name] = backend_cls


def registered_backends() -> List[str]:
    return sorted(BACKEND_REGISTRY)


class BackendOperations(ABC):
    """Capability set every backend implements.

    Kernels receive already-validated tensors and return fresh tensors; they
    never mutate their inputs. Op names for ``binary_``/``unary_``/``reduce_``
    are listed in :data:`BINARY_OPS`, :data:`UNARY_OPS` and
    :data:`REDUCE_OPS`.
    """

    name: str = "abstract"

    BINARY_OPS = ("add", "sub", "mul", "div", "maximum", "minimum")
    UNARY_OPS = ("neg", "exp", "log", "sqrt", "abs", "relu", "sigmoid", "tanh")
    REDUCE_OPS = ("sum", "prod", "max", "min")

    @abstractmethod
    def read_(self, t: Tensor) -> np.ndarray:
        """Flat host values of ``t``."""

    @abstractmethod
    def matmul_(self, a: Tensor, b: Tensor, transpose_a: bool = False, transpose_b: bool = False) -> Tensor:
        ...

    @abstractmethod
    def binary_(self, op: str, a: Tensor, b: Tensor, out_shape: Tuple[int, ...]) -> Tensor:
        ...

    @abstractmethod
    def unary_(self, op: str, x: Tensor) -> Tensor:
        ...

    @abstractmethod
    def reduce_(self, op: str, x: Tensor, axes: Sequence[int]) -> Tensor:
        """Reduce ``axes`` away; the result has the kept dims only."""

    @abstractmethod
    def transpose_(self, x: Tensor, perm: Sequence[int]) -> Tensor:
        ...

    @abstractmethod
    def concat_(self, tensors: Sequence[Tensor], axis: int) -> Tensor:
        ...

    @abstractmethod
    def slice_(self, x: Tensor, begin: Sequence[int], size: Sequence[int]) -> Tensor:
        ...

    @abstractmethod
    def fft_(self, x: ComplexTensor, inverse: bool) -> ComplexTensor:
        """Transform along the last dim, batched over the leading dims."""

    def dispose_(self, t: Tensor) -> None:
        """Release resources held by ``t``; host tensors own none."""

    def memory_(self) -> Dict[str, Any]:
        return {"num_buffers": 0, "num_bytes": 0}

    def shutdown(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class ExecutionContext:
    """Holds the active backend; ops resolve it once per call.

    Backend instances are created lazily on first selection and cached, so
    switching back and forth keeps device state alive.
    """

    def __init__(self, backend: Optional[str] = None):
        self._instances: Dict[str, BackendOperations] = {}
        self._active: Optional[BackendOperations] = None
        self.set_backend(backend or detect_backend())

    def find_backend(self, name: str) -> BackendOperations:
        inst = self._instances.get(name)
        if inst is not None:
            return inst
        cls = BACKEND_REGISTRY.get(name)
        if cls is None:
            raise UnknownBackend(name, BACKEND_REGISTRY)
        inst = cls()
        self._instances[name] = inst
        logger.debug("Instantiated backend %r as %s", name, cls.__name__)
        return inst

    def set_backend(self, name: str) -> BackendOperations:
        previous = self._active.name if self._active is not None else None
        self._active = self.find_backend(name)
        logger.debug("Active backend %s -> %s", previous, name)
        return self._active

    @property
    def is_disposed(self) -> bool:
        return self._active is None

    @property
    def backend(self) -> BackendOperations:
        if self._active is None:
            raise InvalidArgument("ExecutionContext is disposed; call set_backend() to reactivate it.")
        return self._active

    @property
    def backend_name(self) -> str:
        return self.backend.name

    def dispose(self) -> None:
        for inst in self._instances.values():
            inst.shutdown()
        self._instances.clear()
        self._active = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    def __repr__(self) -> str:
        if self._active is None:
            return "ExecutionContext(disposed)"
        return f"ExecutionContext(backend={self._active.name!r})"


_DEFAULT_CONTEXT: ExecutionContext | None = None


def get_default_context() -> ExecutionContext:
    global _DEFAULT_CONTEXT
    if _DEFAULT_CONTEXT is None:
        _DEFAULT_CONTEXT = ExecutionContext()
    return _DEFAULT_CONTEXT


def set_backend(name: str) -> BackendOperations:
    """Switch the process default context to backend ``name``."""
    return get_default_context().set_backend(name)


def get_backend() -> str:
    return get_default_context().backend_name


def resolve_backend(ctx: ExecutionContext | None = None) -> BackendOperations:
    """Backend an op should run on; read exactly once at op entry."""
    return (ctx or get_default_context()).backend


def memory(ctx: ExecutionContext | None = None) -> Dict[str, Any]:
    return resolve_backend(ctx).memory_()
