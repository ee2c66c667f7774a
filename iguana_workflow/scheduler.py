import logging

from iguana_workflow.cleanup import cleanup_job
from iguana_workflow.errors import IguanaError, JobConfigurationError
from iguana_workflow.executor import JobExecutor
from iguana_workflow.models import Job, JobStatus


class Scheduler:
    """
    Runs jobs one at a time in declaration order.

    A job is skipped when a job it needs has already failed. A failure in a
    job without `continue_on_error` aborts the run: the error propagates and
    the statuses collected so far are dropped.
    """

    def __init__(self, executor: JobExecutor, logger: logging.Logger | None = None):
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    def run(self, jobs: dict[str, Job], env: dict | None = None) -> dict[str, JobStatus]:
        statuses: dict[str, JobStatus] = {}

        for name, job in jobs.items():
            statuses[name] = JobStatus.NO_STATUS

            failed_need = self._failed_need(name, job, statuses)
            if failed_need is not None:
                self.logger.warning("Skipping job %s because of failed dependency %s", name, failed_need)
                statuses[name] = JobStatus.SKIPPED
                continue

            try:
                self.executor.execute(name, job, env)
            except IguanaError as e:
                statuses[name] = JobStatus.FAILED
                # Nothing was started for a job that failed validation
                if not isinstance(e, JobConfigurationError):
                    self._cleanup(name, job)
                # An aborting failure is reported by the caller
                if not job.continue_on_error:
                    raise
                self.logger.error("%s", e)
                self.logger.warning("Job %s failed but continue_on_error is set, continuing", name)
                continue

            statuses[name] = JobStatus.SUCCESS
            self.logger.info("Job %s finished successfully", name)
            self._cleanup(name, job)

        return statuses

    def _failed_need(self, name: str, job: Job, statuses: dict[str, JobStatus]) -> str | None:
        for need in job.needs:
            if need not in statuses:
                self.logger.warning(
                    "Job %s requires %s but this was not scheduled yet! Skipping check!", name, need
                )
            elif statuses[need] == JobStatus.FAILED:
                return need
        return None

    def _cleanup(self, name: str, job: Job) -> None:
        cleanup_job(
            name,
            job,
            self.executor.runtime,
            self.logger,
            self.executor.started_services.get(name, []),
        )
