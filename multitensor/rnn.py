"""LSTM cell step and stacked multi-layer composition."""
from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

from .abstraction import BackendOperations, ExecutionContext, resolve_backend
from .abstraction_methods.elementwise import binary_on
from .errors import InvalidArgument, _Diag
from .logger import get_tensors_logger
from .tensor import Tensor
from .tensor_util import convert_to_tensor

logger = get_tensors_logger(__name__)

LSTMCell = Callable[[Tensor, Tensor, Tensor], Tuple[Tensor, Tensor]]


def _require_rank(t: Tensor, rank: int, arg: str, fn: str) -> None:
    if t.rank != rank:
        raise InvalidArgument(
            f"Argument '{arg}' passed to '{fn}' must be rank {rank}, but got rank {t.rank}",
            _Diag(op=fn, tensor=arg, expected=f"rank {rank}", actual=f"rank {t.rank}"),
        )


def _require_shape(t: Tensor, shape: Sequence[int], arg: str, fn: str) -> None:
    if t.shape != tuple(shape):
        raise InvalidArgument(
            f"Argument '{arg}' passed to '{fn}' must have shape {list(shape)}, but got {list(t.shape)}",
            _Diag(op=fn, tensor=arg, expected=str(list(shape)), actual=str(list(t.shape))),
        )


def _lstm_step(backend: BackendOperations, forget_bias: Tensor, kernel: Tensor, bias: Tensor,
               data: Tensor, c: Tensor, h: Tensor) -> Tuple[Tensor, Tensor]:
    scratch: List[Tensor] = []
    produced: List[Tensor] = []

    def tmp(t: Tensor) -> Tensor:
        scratch.append(t)
        return t

    def out(t: Tensor) -> Tensor:
        produced.append(t)
        return t

    try:
        combined = tmp(backend.concat_([data, h], 1))
        weighted = tmp(backend.matmul_(combined, kernel))
        res = tmp(binary_on(backend, "add", weighted, bias))
        batch, size = res.shape[0], res.shape[1] // 4

        # gate order along the feature axis: input, candidate, forget, output
        i, j, f, o = (tmp(backend.slice_(res, [0, k * size], [batch, size])) for k in range(4))
        sig_f = tmp(backend.unary_("sigmoid", tmp(binary_on(backend, "add", f, forget_bias))))
        sig_i = tmp(backend.unary_("sigmoid", i))
        tanh_j = tmp(backend.unary_("tanh", j))
        sig_o = tmp(backend.unary_("sigmoid", o))
        kept = tmp(binary_on(backend, "mul", c, sig_f))
        fresh = tmp(binary_on(backend, "mul", sig_i, tanh_j))
        new_c = out(binary_on(backend, "add", kept, fresh))
        new_h = out(binary_on(backend, "mul", tmp(backend.unary_("tanh", new_c)), sig_o))
    except Exception:
        for t in produced:
            t.dispose()
        raise
    finally:
        for t in scratch:
            t.dispose()
    return new_c, new_h


def basic_lstm_cell(forget_bias, lstm_kernel, lstm_bias, data, c, h,
                    *, ctx: Optional[ExecutionContext] = None) -> Tuple[Tensor, Tensor]:
    """One LSTM step; returns ``(new_c, new_h)``.

    ``lstm_kernel`` is ``[input_dim + hidden, 4 * hidden]``, ``lstm_bias`` is
    ``[4 * hidden]`` and ``data``/``c``/``h`` are ``[batch, ...]``. The gate
    pre-activations are split in the order input, candidate, forget, output:

        new_c = c * sigmoid(f + forget_bias) + sigmoid(i) * tanh(j)
        new_h = tanh(new_c) * sigmoid(o)
    """
    fn = "basic_lstm_cell"
    backend = resolve_backend(ctx)
    forget_bias = convert_to_tensor(forget_bias, "forget_bias", fn)
    lstm_kernel = convert_to_tensor(lstm_kernel, "lstm_kernel", fn)
    lstm_bias = convert_to_tensor(lstm_bias, "lstm_bias", fn)
    data = convert_to_tensor(data, "data", fn)
    c = convert_to_tensor(c, "c", fn)
    h = convert_to_tensor(h, "h", fn)

    _require_rank(forget_bias, 0, "forget_bias", fn)
    _require_rank(lstm_kernel, 2, "lstm_kernel", fn)
    _require_rank(lstm_bias, 1, "lstm_bias", fn)
    _require_rank(data, 2, "data", fn)
    _require_rank(c, 2, "c", fn)
    _require_rank(h, 2, "h", fn)

    batch, hidden = c.shape
    _require_shape(h, (batch, hidden), "h", fn)
    if data.shape[0] != batch:
        _require_shape(data, (batch, data.shape[1]), "data", fn)
    _require_shape(lstm_kernel, (data.shape[1] + hidden, 4 * hidden), "lstm_kernel", fn)
    _require_shape(lstm_bias, (4 * hidden,), "lstm_bias", fn)

    return _lstm_step(backend, forget_bias, lstm_kernel, lstm_bias, data, c, h)


def multi_rnn_cell(lstm_cells: Sequence[LSTMCell], data, c: Sequence, h: Sequence) -> List[Tuple[Tensor, Tensor]]:
    """Run stacked cells; layer ``k`` reads the hidden output of layer ``k - 1``.

    Each cell is a callable ``(data, c, h) -> (new_c, new_h)`` with its
    weights (and execution context) already bound. Returns one
    ``(new_c, new_h)`` pair per layer.
    """
    fn = "multi_rnn_cell"
    data = convert_to_tensor(data, "data", fn)
    for arg, states in (("c", c), ("h", h)):
        if not isinstance(states, (list, tuple)):
            raise InvalidArgument(
                f"Argument '{arg}' passed to '{fn}' must be a list of Tensors, but got '{type(states).__name__}'"
            )
    c = [convert_to_tensor(t, f"c[{k}]", fn) for k, t in enumerate(c)]
    h = [convert_to_tensor(t, f"h[{k}]", fn) for k, t in enumerate(h)]
    for arg, states in (("c", c), ("h", h)):
        if len(states) != len(lstm_cells):
            raise InvalidArgument(
                f"Argument '{arg}' passed to '{fn}' must hold one state per cell "
                f"({len(lstm_cells)}), but got {len(states)}",
                _Diag(op=fn, tensor=arg, expected=f"{len(lstm_cells)} states", actual=str(len(states))),
            )
        for k, t in enumerate(states):
            _require_rank(t, 2, f"{arg}[{k}]", fn)

    outputs: List[Tuple[Tensor, Tensor]] = []
    x = data
    for k, cell in enumerate(lstm_cells):
        logger.debug("%s: layer %d input shape %s", fn, k, x.shape)
        new_c, new_h = cell(x, c[k], h[k])
        outputs.append((new_c, new_h))
        x = new_h
    return outputs
