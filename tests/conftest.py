import logging

import pytest

from iguana_workflow.errors import RuntimeCommandError
from iguana_workflow.logger import PACKAGE_LOGGER
from iguana_workflow.models import WorkflowOptions
from iguana_workflow.runtime import RecordingRuntime


class FailingRuntime(RecordingRuntime):
    """Records invocations and fails those whose argv contains one of `fail_on`."""

    def __init__(self, options, fail_on=(), logger=None):
        super().__init__(options, logger)
        self.fail_on = set(fail_on)

    def _execute(self, invocation):
        super()._execute(invocation)
        if self.fail_on.intersection(invocation.argv):
            raise RuntimeCommandError(invocation, f"'{invocation}' failed with exit code 125", returncode=125)


@pytest.fixture
def options():
    return WorkflowOptions(dry_run=True)


@pytest.fixture
def runtime(options):
    return RecordingRuntime(options)


@pytest.fixture
def failing_runtime(options):
    def make(*fail_on, opts=None):
        return FailingRuntime(opts or options, fail_on=fail_on)
    return make


@pytest.fixture
def test_logger():
    return logging.getLogger("iguana_tests")


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
