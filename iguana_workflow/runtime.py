import logging
import re
import shlex
import subprocess
from dataclasses import dataclass

from iguana_workflow import config
from iguana_workflow.errors import RuntimeCommandError
from iguana_workflow.models import Container, WorkflowOptions


@dataclass(frozen=True)
class Invocation:
    """A single call to the container runtime binary."""

    action: str
    argv: tuple[str, ...]
    interactive: bool = False

    def __str__(self) -> str:
        return shlex.join(self.argv)


def volume_name(volume: str) -> str:
    return volume.split(":", 1)[0]


def service_container_name(job: str, service: str) -> str:
    """Container name of a job's service, unique within a workflow run."""
    return re.sub(r"[^a-zA-Z0-9_.-]", "-", f"iguana-{job}-{service}")


class ContainerRuntime:
    """
    Builds runtime invocations and hands them to `_execute`.

    Subclasses decide what executing means: `PodmanRuntime` launches the
    binary, `RecordingRuntime` only logs and records.
    """

    def __init__(self, options: WorkflowOptions, logger: logging.Logger | None = None):
        self.options = options
        self.logger = logger or logging.getLogger(__name__)

    def _command(self, *args: str) -> list[str]:
        return [self.options.runtime_binary, *args]

    def pull(self, image: str) -> None:
        self.logger.info("Pulling image %s", image)
        self._execute(Invocation(
            action="pull",
            argv=tuple(self._command("image", "pull", "--tls-verify=false", image)),
        ))

    def create_volume(self, name: str) -> None:
        self.logger.debug("Creating volume %s", name)
        self._execute(Invocation(
            action="create_volume",
            argv=tuple(self._command("volume", "create", "--ignore", name)),
        ))

    def run(self, container: Container, env: dict, *, name: str | None = None, as_service: bool = False) -> None:
        cmd = self._command(
            "run",
            "--network=host",
            f"--annotation={config.MARKER}",
            f"--env={config.MARKER}",
            f"--mount=type=bind,source={config.SHARED_DIR},target={config.SHARED_DIR}",
        )
        if not self.options.debug:
            cmd.append("--rm")
        if self.options.privileged:
            cmd.extend(["--privileged", "--volume=/dev:/dev"])

        for volume in container.volumes:
            self.create_volume(volume_name(volume))
            cmd.append(f"--volume={volume}")

        for key, value in env.items():
            cmd.append(f"--env={key}={value}")

        if as_service:
            if name:
                cmd.append(f"--name={name}")
            cmd.append("--detach")
        else:
            cmd.extend(["--interactive", "--tty"])

        cmd.append(container.image)

        kind = "service" if as_service else "container"
        self.logger.info("Starting %s %s", kind, name or container.image)
        self._execute(Invocation(action="run", argv=tuple(cmd), interactive=not as_service))

    def stop(self, name: str) -> None:
        self.logger.info("Stopping container %s", name)
        self._execute(Invocation(
            action="stop",
            argv=tuple(self._command("container", "stop", "--ignore", name)),
        ))

    def remove_image(self, image: str) -> None:
        if self.options.debug:
            self.logger.info("Debug mode, keeping image %s", image)
            return
        self.logger.info("Removing image %s", image)
        self._execute(Invocation(
            action="remove_image",
            argv=tuple(self._command("image", "rm", "--force", image)),
        ))

    def _execute(self, invocation: Invocation) -> None:
        raise NotImplementedError


class PodmanRuntime(ContainerRuntime):
    """Runs invocations with the real runtime binary and waits for them."""

    def _execute(self, invocation: Invocation) -> None:
        self.logger.debug("Executing: %s", invocation)
        try:
            # Interactive containers own the terminal, their output is not captured
            if invocation.interactive:
                proc = subprocess.run(list(invocation.argv), check=False)
            else:
                proc = subprocess.run(list(invocation.argv), check=False, capture_output=True)
        except OSError as e:
            raise RuntimeCommandError(
                invocation,
                f"Unable to launch {invocation.argv[0]}: {e}",
            ) from e

        if proc.returncode != 0:
            stderr = (proc.stderr or b"").decode("utf-8", errors="replace").strip()
            message = f"'{invocation}' failed with exit code {proc.returncode}"
            if stderr:
                message += f": {stderr[-2000:]}"
            raise RuntimeCommandError(invocation, message, returncode=proc.returncode, stderr=stderr)


class RecordingRuntime(ContainerRuntime):
    """Logs and records invocations without running anything. Used for dry runs."""

    def __init__(self, options: WorkflowOptions, logger: logging.Logger | None = None):
        super().__init__(options, logger)
        self.invocations: list[Invocation] = []

    def _execute(self, invocation: Invocation) -> None:
        self.logger.info("[dry-run] %s", invocation)
        self.invocations.append(invocation)


def create_runtime(options: WorkflowOptions, logger: logging.Logger | None = None) -> ContainerRuntime:
    if options.dry_run:
        return RecordingRuntime(options, logger)
    return PodmanRuntime(options, logger)
