# --- helpers (pure-public API) ---
from __future__ import annotations

from typing import Sequence, Tuple

from .errors import InvalidArgument, _Diag


def assert_and_get_broadcast_shape(a: Sequence[int], b: Sequence[int]) -> Tuple[int, ...]:
    """NumPy-style broadcast of two shape tuples."""
    out = []
    la, lb = len(a), len(b)
    L = max(la, lb)
    for i in range(1, L+1):
        da = a[-i] if i <= la else 1
        db = b[-i] if i <= lb else 1
        if da == 1: out.append(db)
        elif db == 1: out.append(da)
        elif da == db: out.append(da)
        else:
            raise InvalidArgument(
                f"Operands could not be broadcast together with shapes {tuple(a)} and {tuple(b)}",
                _Diag(op="broadcast", expected=f"dim {da} or 1", actual=str(db)),
            )
    return tuple(reversed(out))
