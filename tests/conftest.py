import pytest

import multitensor as mt

BACKENDS = ["cpu", "accelerated"]


def pytest_addoption(parser):
    parser.addoption(
        "--backend",
        action="append",
        default=None,
        choices=BACKENDS,
        help="Restrict backend-parametrized tests to this backend (repeatable)",
    )


def pytest_generate_tests(metafunc):
    if "backend_name" in metafunc.fixturenames:
        selected = metafunc.config.getoption("--backend") or BACKENDS
        metafunc.parametrize("backend_name", selected)


@pytest.fixture
def ctx(backend_name):
    """Fresh execution context on ``backend_name``, shut down after the test."""
    context = mt.ExecutionContext(backend_name)
    yield context
    context.dispose()
