import logging

from iguana_workflow.errors import WorkflowError
from iguana_workflow.executor import JobExecutor
from iguana_workflow.models import JobStatus, Workflow, WorkflowOptions
from iguana_workflow.runtime import ContainerRuntime, create_runtime
from iguana_workflow.scheduler import Scheduler


def run_workflow(
    workflow: Workflow,
    options: WorkflowOptions,
    runtime: ContainerRuntime | None = None,
    logger: logging.Logger | None = None,
) -> dict[str, JobStatus]:
    """
    Run every job of the workflow and return the final status of each.

    Raises WorkflowError when there is nothing to run and the failing job's
    error when a job without continue_on_error fails.
    """
    logger = logger or logging.getLogger(__name__)
    logger.info("Loaded control %s", workflow.name or "file")

    if not workflow.jobs:
        raise WorkflowError("No jobs in control file!")

    if runtime is None:
        runtime = create_runtime(options, logger)
    if options.dry_run:
        logger.info("Dry run, runtime commands are logged but not executed")

    scheduler = Scheduler(JobExecutor(runtime, logger), logger)
    statuses = scheduler.run(workflow.jobs, workflow.env)

    failed = [name for name, status in statuses.items() if status == JobStatus.FAILED]
    skipped = [name for name, status in statuses.items() if status == JobStatus.SKIPPED]
    if failed:
        logger.warning("Failed jobs: %s", ", ".join(failed))
    if skipped:
        logger.warning("Skipped jobs: %s", ", ".join(skipped))
    logger.info("Workflow ran successfully")
    return statuses
