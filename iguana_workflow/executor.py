import logging

from iguana_workflow.errors import JobConfigurationError, JobError, RuntimeCommandError
from iguana_workflow.models import Job
from iguana_workflow.runtime import ContainerRuntime, service_container_name


def merge_env(*layers: dict | None) -> dict:
    """Overlay env mappings left to right; later keys win."""
    merged = {}
    for layer in layers:
        merged.update(layer or {})
    return merged


class JobExecutor:
    def __init__(self, runtime: ContainerRuntime, logger: logging.Logger | None = None):
        self.runtime = runtime
        self.logger = logger or logging.getLogger(__name__)
        # job name -> services whose container was started
        self.started_services: dict[str, list[str]] = {}

    def execute(self, name: str, job: Job, inherited_env: dict | None = None) -> None:
        """
        Start the job's services, then run its main container in the foreground.

        Raises JobError when the job has no image, when any service fails to
        start, or when the main container cannot be prepared or run.
        """
        image = job.container.image
        if not image:
            raise JobConfigurationError(name, f"No image specified for job {name}")

        self.logger.info("Running job %s", name)
        if job.steps:
            self.logger.debug("Job %s declares %d step(s), steps are not executed", name, len(job.steps))

        failed = self._start_services(name, job, inherited_env)
        if failed:
            raise JobError(name, f"Failed to start services {', '.join(failed)} for job {name}")

        try:
            self.runtime.pull(image)
        except RuntimeCommandError as e:
            raise JobError(name, f"Unable to prepare image {image} for job {name}: {e}") from e

        env = merge_env(inherited_env, job.container.env)
        try:
            self.runtime.run(job.container, env)
        except RuntimeCommandError as e:
            raise JobError(name, f"Job {name} failed: {e}") from e

    def _start_services(self, name: str, job: Job, inherited_env: dict | None) -> list[str]:
        # Every service is attempted even after one fails
        started = self.started_services.setdefault(name, [])
        failed = []
        for service_name, service in job.services.items():
            env = merge_env(inherited_env, service.env)
            try:
                self.runtime.pull(service.image)
                self.runtime.run(
                    service,
                    env,
                    name=service_container_name(name, service_name),
                    as_service=True,
                )
            except RuntimeCommandError as e:
                self.logger.error("Service %s of job %s failed: %s", service_name, name, e)
                failed.append(service_name)
            else:
                started.append(service_name)
        return failed
