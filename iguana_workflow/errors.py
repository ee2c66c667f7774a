class IguanaError(Exception):
    """Base class for every error raised while running a workflow."""


class WorkflowError(IguanaError, ValueError):
    """The workflow source is missing, unparseable or malformed."""


class RuntimeCommandError(IguanaError):
    """A container runtime invocation failed to launch or exited non-zero."""

    def __init__(self, invocation, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.invocation = invocation
        self.returncode = returncode
        self.stderr = stderr


class JobError(IguanaError):
    def __init__(self, job: str, message: str):
        super().__init__(message)
        self.job = job


class JobConfigurationError(JobError):
    """The job cannot be run as declared, e.g. its container has no image."""
