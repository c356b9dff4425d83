"""Tensor ops with a pure-Python reference backend and an accelerated backend."""
from __future__ import annotations

from .abstraction import (
    BACKEND_REGISTRY,
    BackendOperations,
    ExecutionContext,
    get_backend,
    get_default_context,
    memory,
    register_backend,
    registered_backends,
    set_backend,
)
from .errors import InvalidArgument, UnknownBackend, UnsupportedOp, UnsupportedRank
from .faculty import Faculty, available_executors, detect_backend
from .tensor import ComplexTensor, Tensor, TensorBuffer

# Backends register themselves on import.
from . import pure_backend  # noqa: F401
from . import accelerator_backends  # noqa: F401

from .abstraction_methods.creation import (
    buffer,
    complex,
    imag,
    ones,
    random_normal,
    random_uniform,
    real,
    scalar,
    tensor,
    tensor1d,
    tensor2d,
    tensor3d,
    zeros,
    zeros_like,
)
from .abstraction_methods.elementwise import (
    abs,
    add,
    div,
    exp,
    log,
    maximum,
    minimum,
    mul,
    neg,
    relu,
    sigmoid,
    sqrt,
    sub,
    tanh,
)
from .abstraction_methods.fourier import fft, ifft, rfft
from .abstraction_methods.reduction import max, mean, min, prod, sum
from .abstraction_methods.reshape import concat, concat2d, reshape, slice, split, transpose
from .axis_util import (
    axes_are_inner_most_dims,
    combine_locations,
    compute_out_and_reduce_shapes,
    expand_shape_to_keep_dim,
)
from .linalg import matmul
from .rnn import basic_lstm_cell, multi_rnn_cell
from .tensor_util import convert_to_tensor
