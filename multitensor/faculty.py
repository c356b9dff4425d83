"""Default backend and device executor discovery."""
from __future__ import annotations

import importlib.util
import os
from enum import IntEnum


class Faculty(IntEnum):
    """Available execution tiers."""

    CPU = 1  # Sequential pure-Python reference loops
    ACCELERATED = 2  # Kernels dispatched to a device executor


FORCE_ENV = "TENSOR_BACKEND"
EXECUTOR_ENV = "TENSOR_ACCEL_EXECUTOR"

_BACKEND_NAMES = {
    Faculty.CPU: "cpu",
    Faculty.ACCELERATED: "accelerated",
}


def detect_backend() -> str:
    """Return the backend name the process default context starts with.

    The environment variable ``TENSOR_BACKEND`` may name any registered
    backend; unknown names are rejected when the context is built.
    """
    forced = os.environ.get(FORCE_ENV)
    if forced:
        return forced.strip().lower()
    return _BACKEND_NAMES[Faculty.CPU]


def detect_executor() -> str:
    """Return the device executor the accelerated backend should use."""
    forced = os.environ.get(EXECUTOR_ENV)
    if forced:
        return forced.strip().lower()
    return "numpy"


def available_executors() -> list[str]:
    """Return all device executors whose libraries are importable."""
    spec = importlib.util.find_spec
    levels = []
    if spec("numpy") is not None:
        levels.append("numpy")
    if spec("torch") is not None:
        levels.append("torch")
    return levels
