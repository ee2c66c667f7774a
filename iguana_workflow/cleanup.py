import logging

from iguana_workflow.errors import RuntimeCommandError
from iguana_workflow.models import Job
from iguana_workflow.runtime import ContainerRuntime, service_container_name


def cleanup_job(
    name: str,
    job: Job,
    runtime: ContainerRuntime,
    logger: logging.Logger | None = None,
    started_services: list[str] | None = None,
) -> None:
    """
    Stop the job's started services and remove the job's images.

    Only services listed in `started_services` are stopped; all declared
    services are when it is None. Failures are logged, never raised.
    """
    logger = logger or logging.getLogger(__name__)
    logger.debug("Cleaning up after job %s", name)
    if started_services is None:
        started_services = list(job.services)

    for service_name, service in job.services.items():
        if service_name in started_services:
            container_name = service_container_name(name, service_name)
            try:
                runtime.stop(container_name)
            except RuntimeCommandError as e:
                logger.error("Unable to stop service %s of job %s: %s", service_name, name, e)
        try:
            runtime.remove_image(service.image)
        except RuntimeCommandError as e:
            logger.error("Unable to remove image %s of service %s: %s", service.image, service_name, e)

    try:
        runtime.remove_image(job.container.image)
    except RuntimeCommandError as e:
        logger.error("Unable to remove image %s of job %s: %s", job.container.image, name, e)
