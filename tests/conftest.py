import pytest

from sharefile_sweep.log import configure_logging


@pytest.fixture(autouse=True)
def _logging():
    """Route structlog to the current stderr and keep it quiet."""
    configure_logging("WARNING")
    yield
