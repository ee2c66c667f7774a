from dataclasses import dataclass, field
from enum import Enum

from iguana_workflow import config


class JobStatus(Enum):
    NO_STATUS = "no_status"
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Container:
    image: str
    env: dict = field(default_factory=dict)
    volumes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Step:
    """A job step. Parsed and kept on the job, not executed."""

    run: str
    name: str | None = None
    uses: str | None = None
    with_: dict | str | None = None
    env: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Job:
    container: Container
    services: dict[str, Container] = field(default_factory=dict)
    needs: list[str] = field(default_factory=list)
    steps: list[Step] = field(default_factory=list)
    continue_on_error: bool = False


@dataclass(frozen=True)
class Workflow:
    # Insertion order of `jobs` is the execution order.
    jobs: dict[str, Job]
    name: str | None = None
    env: dict = field(default_factory=dict)


@dataclass(frozen=True)
class WorkflowOptions:
    dry_run: bool = False
    debug: bool = False
    privileged: bool = False
    runtime_binary: str = config.DEFAULT_RUNTIME
