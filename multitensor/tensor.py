"""Tensor data model: flat row-major float32 buffers with an immutable shape."""
from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np

from .errors import InvalidArgument, _Diag
from .logger import get_tensors_logger

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from .abstraction import BackendOperations
    from .accelerator_backends.executor import DeviceBuffer

logger = get_tensors_logger(__name__)


def size_from_shape(shape: Sequence[int]) -> int:
    n = 1
    for s in shape:
        n *= int(s)
    return n


def compute_strides(shape: Sequence[int]) -> List[int]:
    """Row-major strides in elements (the last dim has stride 1)."""
    strides = [1] * len(shape)
    for i in range(len(shape) - 2, -1, -1):
        strides[i] = strides[i + 1] * int(shape[i + 1])
    return strides


def loc_to_index(loc: Sequence[int], shape: Sequence[int]) -> int:
    if len(loc) != len(shape):
        raise InvalidArgument(
            "Number of coordinates in get() must match the rank of the tensor",
            _Diag(op="get", expected=f"{len(shape)} coordinates", actual=str(len(loc))),
        )
    index = 0
    for i, (l, s) in enumerate(zip(loc, shape)):
        if l < 0 or l >= s:
            raise InvalidArgument(
                f"Coordinate {tuple(loc)} out of range for shape {tuple(shape)}",
                _Diag(op="get", expected=f"index {i} in [0, {s})", actual=str(l)),
            )
        index = index * int(s) + int(l)
    return index


def index_to_loc(index: int, shape: Sequence[int]) -> List[int]:
    loc = [0] * len(shape)
    for i in range(len(shape) - 1, -1, -1):
        s = int(shape[i])
        loc[i] = index % s
        index //= s
    return loc


def _check_shape(shape: Sequence[int]) -> Tuple[int, ...]:
    shape = tuple(int(s) for s in shape)
    for s in shape:
        if s < 0:
            raise InvalidArgument(f"Tensor dimensions must be non-negative, got shape {shape}")
    return shape


class Tensor:
    """Real float32 tensor.

    The backing store is either a flat host array or a device buffer owned by
    the backend that produced the tensor. Device-resident tensors must be
    released with :meth:`dispose`.
    """

    dtype = "float32"

    def __init__(
        self,
        values: Optional[np.ndarray] = None,
        shape: Sequence[int] = (),
        *,
        device_buffer: "DeviceBuffer | None" = None,
        owner: "BackendOperations | None" = None,
    ):
        self._shape = _check_shape(shape)
        self._owner = owner
        self._device = device_buffer
        self._disposed = False
        expected = size_from_shape(self._shape)
        if device_buffer is not None:
            self._values = None
            length = device_buffer.size
        else:
            if values is None:
                values = np.zeros(expected, dtype=np.float32)
            self._values = np.ascontiguousarray(values, dtype=np.float32).reshape(-1)
            length = self._values.size
        if length != expected:
            raise InvalidArgument(
                f"Based on the provided shape, {list(self._shape)}, the tensor should have "
                f"{expected} values but has {length}",
                _Diag(op="Tensor", expected=f"{expected} values", actual=str(length)),
            )

    # --- Properties ---

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._shape

    @property
    def rank(self) -> int:
        return len(self._shape)

    @property
    def size(self) -> int:
        return size_from_shape(self._shape)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def is_device_resident(self) -> bool:
        return self._device is not None

    @property
    def device_buffer(self) -> "DeviceBuffer | None":
        return self._device

    @property
    def owner(self) -> "BackendOperations | None":
        return self._owner

    # --- Data access ---

    def _ensure_live(self) -> None:
        if self._disposed:
            raise InvalidArgument("Tensor is disposed.")

    def data_sync(self) -> np.ndarray:
        """Flat host copy of the values, waiting on pending device work."""
        self._ensure_live()
        if self._values is not None:
            return self._values
        return self._owner.read_(self)

    def numpy(self) -> np.ndarray:
        return np.array(self.data_sync(), dtype=np.float32).reshape(self._shape)

    def tolist(self):
        return self.numpy().tolist()

    def get(self, *loc: int) -> float:
        return float(self.data_sync()[loc_to_index(loc, self._shape)])

    def item(self) -> float:
        if self.size != 1:
            raise InvalidArgument(f"item() needs a single-element tensor, got shape {self._shape}")
        return float(self.data_sync()[0])

    def reshape(self, shape: Sequence[int]) -> "Tensor":
        """Same buffer, new shape."""
        from .abstraction_methods.reshape import infer_shape

        self._ensure_live()
        shape = infer_shape(shape, self.size)
        if self._device is not None:
            self._device.executor.retain(self._device)
            return Tensor(shape=shape, device_buffer=self._device, owner=self._owner)
        return Tensor(self._values, shape)

    def rfft(self, *, ctx=None):
        from .abstraction_methods.fourier import rfft

        return rfft(self, ctx=ctx)

    # --- Lifecycle ---

    def dispose(self) -> None:
        if self._disposed:
            logger.warning("dispose() called twice on tensor of shape %s", self._shape)
            return
        self._disposed = True
        if self._device is not None and self._owner is not None:
            self._owner.dispose_(self)
        self._values = None

    def __repr__(self) -> str:
        if self._disposed:
            return f"Tensor(shape={self._shape}, disposed)"
        where = "device" if self._device is not None else "host"
        return f"Tensor(shape={self._shape}, dtype={self.dtype}, {where})"


class ComplexTensor:
    """Same-shape real and imaginary parts, always held together."""

    dtype = "complex64"

    def __init__(self, real: Tensor, imag: Tensor):
        if not isinstance(real, Tensor) or not isinstance(imag, Tensor):
            raise InvalidArgument("ComplexTensor parts must both be Tensors")
        if real.shape != imag.shape:
            raise InvalidArgument(
                f"real and imag shapes, {real.shape} and {imag.shape}, must match in call to complex",
                _Diag(op="complex", tensor="imag", expected=str(real.shape), actual=str(imag.shape)),
            )
        self.real = real
        self.imag = imag

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.real.shape

    @property
    def rank(self) -> int:
        return self.real.rank

    @property
    def size(self) -> int:
        return self.real.size

    @property
    def is_disposed(self) -> bool:
        return self.real.is_disposed or self.imag.is_disposed

    def data_sync(self) -> np.ndarray:
        """Real and imaginary parts interleaved per element."""
        re = self.real.data_sync()
        im = self.imag.data_sync()
        out = np.empty(re.size * 2, dtype=np.float32)
        out[0::2] = re
        out[1::2] = im
        return out

    def numpy(self) -> np.ndarray:
        return (self.real.numpy().astype(np.complex64) + 1j * self.imag.numpy()).astype(np.complex64)

    def get(self, *loc: int) -> complex:
        return complex(self.real.get(*loc), self.imag.get(*loc))

    def fft(self, *, ctx=None) -> "ComplexTensor":
        from .abstraction_methods.fourier import fft

        return fft(self, ctx=ctx)

    def ifft(self, *, ctx=None) -> "ComplexTensor":
        from .abstraction_methods.fourier import ifft

        return ifft(self, ctx=ctx)

    def dispose(self) -> None:
        self.real.dispose()
        self.imag.dispose()

    def __repr__(self) -> str:
        return f"ComplexTensor(shape={self.shape}, dtype={self.dtype})"


class TensorBuffer:
    """Mutable staging area for building a tensor element by element."""

    def __init__(self, shape: Sequence[int], values: Any = None):
        self.shape = _check_shape(shape)
        self.size = size_from_shape(self.shape)
        if values is None:
            self.values = np.zeros(self.size, dtype=np.float32)
        else:
            self.values = np.array(values, dtype=np.float32).reshape(-1)
            if self.values.size != self.size:
                raise InvalidArgument(
                    f"Length of values '{self.values.size}' does not match the size "
                    f"inferred by the shape '{self.size}'."
                )

    def set(self, value: float, *loc: int) -> None:
        self.values[loc_to_index(loc, self.shape)] = value

    def get(self, *loc: int) -> float:
        return float(self.values[loc_to_index(loc, self.shape)])

    def to_tensor(self) -> Tensor:
        return Tensor(self.values.copy(), self.shape)
