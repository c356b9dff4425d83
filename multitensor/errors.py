"""Error taxonomy shared by the op surface, backends and executors."""
from __future__ import annotations

import os
from dataclasses import dataclass

DIAG_LEVEL = os.environ.get("TENSOR_DIAG", "auto")  # 'concise' | 'auto' | 'verbose'


@dataclass
class _Diag:
    op: str | None = None          # e.g., "basic_lstm_cell"
    tensor: str | None = None      # e.g., "lstm_kernel"
    expected: str | None = None    # e.g., "rank 2"
    actual: str | None = None      # e.g., "rank 1"
    hint: str | None = None


class InvalidArgument(ValueError):
    """Bad rank, shape, axis or non-tensor argument.

    Raised before any numeric work starts.
    """

    def __init__(self, message: str, diag: _Diag | None = None):
        self._message = message
        self._diag = diag
        super().__init__(str(self))

    @property
    def diag(self) -> _Diag | None:
        return self._diag

    def __str__(self) -> str:
        d = self._diag
        if d is None or DIAG_LEVEL == "concise":
            return self._message
        parts = []
        if d.op:     parts.append(d.op)
        if d.tensor: parts.append(d.tensor)
        prefix = f"{' in '.join(parts)}: " if parts else ""
        line1 = f"{prefix}expected {d.expected}, got {d.actual}."
        want_hint = (DIAG_LEVEL == "verbose") or (DIAG_LEVEL == "auto" and d.hint)
        if want_hint and d.hint:
            return self._message + "\n" + line1 + f"\nHint: {d.hint}"
        return self._message + "\n" + line1


class UnknownBackend(LookupError):
    """Backend or device executor name is not registered."""

    def __init__(self, name: str, known=()):
        self.name = name
        self.known = tuple(known)
        super().__init__(f"Backend '{name}' not found in registry {sorted(self.known)}")

    def __str__(self) -> str:
        return self.args[0]


class UnsupportedRank(NotImplementedError):
    """The executor cannot run ``op`` on inputs of this rank."""

    def __init__(self, op: str, rank: int, max_rank: int, backend: str = "accelerated"):
        self.op = op
        self.rank = rank
        self.max_rank = max_rank
        super().__init__(
            f"{op} on the '{backend}' backend supports rank <= {max_rank}, got rank {rank}"
        )


class UnsupportedOp(NotImplementedError):
    """The executor has no kernel for ``op``."""

    def __init__(self, op: str, executor: str):
        self.op = op
        super().__init__(f"Executor '{executor}' has no kernel for op '{op}'")
