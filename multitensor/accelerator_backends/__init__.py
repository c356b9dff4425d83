"""Device executors and the accelerated backend built on them.

Importing this package registers the bundled executors (``numpy`` always,
``torch`` when it is installed) and the ``accelerated`` backend.
"""

from . import numpy_executor  # noqa: F401
from . import torch_executor  # noqa: F401
from . import accelerated_backend  # noqa: F401
