import urllib.error
import urllib.request
from pathlib import Path

import yaml

from iguana_workflow.errors import WorkflowError
from iguana_workflow.models import Container, Job, Step, Workflow


def load_workflow(source: str) -> Workflow:
    """Load a workflow from a local file or an http(s) URL."""
    if source.startswith(("http://", "https://")):
        try:
            with urllib.request.urlopen(source, timeout=30) as response:
                text = response.read().decode("utf-8")
        except (urllib.error.URLError, OSError) as e:
            raise WorkflowError(f"Unable to fetch workflow from {source}: {e}") from e
        return parse_workflow(text)

    path = Path(source)
    if not path.is_file():
        raise WorkflowError(f"No such file: {source}")
    return parse_workflow(path.read_text())


def parse_workflow(text: str) -> Workflow:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise WorkflowError(f"Unable to parse provided workflow file: {e}") from e

    if not isinstance(raw, dict):
        raise WorkflowError(f"Invalid workflow file: expected YAML mapping, got {type(raw).__name__}")

    if not isinstance(raw.get("jobs"), dict):
        raise WorkflowError("Invalid workflow file: no 'jobs' section found")

    jobs = {}
    for job_name, job_raw in raw["jobs"].items():
        jobs[str(job_name)] = _parse_job(str(job_name), job_raw)

    name = raw.get("name")
    return Workflow(
        jobs=jobs,
        name=str(name) if name is not None else None,
        env=_str_dict(raw.get("env") or {}, "workflow env"),
    )


def _parse_job(name: str, raw) -> Job:
    if not isinstance(raw, dict):
        raise WorkflowError(f"Invalid job {name}: expected a mapping")
    if "container" not in raw:
        raise WorkflowError(f"Invalid job {name}: no 'container' specified")

    services_raw = raw.get("services") or {}
    if not isinstance(services_raw, dict):
        raise WorkflowError(f"Invalid job {name}: 'services' must be a mapping")
    services = {
        str(service_name): _parse_container(f"service {service_name} of job {name}", service_raw)
        for service_name, service_raw in services_raw.items()
    }

    # A single dependency may be given as a plain string
    needs = raw.get("needs") or []
    if isinstance(needs, str):
        needs = [needs]
    if not isinstance(needs, list):
        raise WorkflowError(f"Invalid job {name}: 'needs' must be a list of job names")

    steps_raw = raw.get("steps") or []
    if not isinstance(steps_raw, list):
        raise WorkflowError(f"Invalid job {name}: 'steps' must be a list")

    continue_on_error = raw.get("continue_on_error", False)
    if not isinstance(continue_on_error, bool):
        raise WorkflowError(f"Invalid job {name}: 'continue_on_error' must be a boolean")

    return Job(
        container=_parse_container(f"job {name}", raw["container"]),
        services=services,
        needs=[str(n) for n in needs],
        steps=[_parse_step(name, i, step_raw) for i, step_raw in enumerate(steps_raw)],
        continue_on_error=continue_on_error,
    )


def _parse_container(where: str, raw) -> Container:
    if not isinstance(raw, dict):
        raise WorkflowError(f"Invalid container for {where}: expected a mapping")
    if "image" not in raw:
        raise WorkflowError(f"Invalid container for {where}: no 'image' specified")

    image = raw["image"]
    volumes = raw.get("volumes") or []
    if not isinstance(volumes, list):
        raise WorkflowError(f"Invalid container for {where}: 'volumes' must be a list")

    return Container(
        image="" if image is None else str(image),
        env=_str_dict(raw.get("env") or {}, f"env of {where}"),
        volumes=[str(v) for v in volumes],
    )


def _parse_step(job_name: str, index: int, raw) -> Step:
    if not isinstance(raw, dict) or "run" not in raw:
        raise WorkflowError(f"Invalid step {index + 1} of job {job_name}: no 'run' specified")

    with_ = raw.get("with")
    if isinstance(with_, dict):
        with_ = _str_dict(with_, f"step {index + 1} of job {job_name}")
    elif with_ is not None:
        with_ = str(with_)

    return Step(
        run=str(raw["run"]),
        name=_optional_str(raw.get("name")),
        uses=_optional_str(raw.get("uses")),
        with_=with_,
        env=_str_dict(raw.get("env") or {}, f"env of step {index + 1} of job {job_name}"),
    )


def _optional_str(value) -> str | None:
    return None if value is None else str(value)


def _str_dict(d, where: str) -> dict:
    if not isinstance(d, dict):
        raise WorkflowError(f"Invalid {where}: expected a mapping")
    result = {}
    for k, v in d.items():
        if v is None:
            result[str(k)] = ""
        elif isinstance(v, bool):
            result[str(k)] = str(v).lower()
        else:
            result[str(k)] = str(v)
    return result
