import os

DEFAULT_WORKFLOW = "control.yaml"
DEFAULT_RUNTIME = "podman"

# Host directory shared with every container at the same path
SHARED_DIR = "/iguana"

# Annotation and environment marker identifying containers started by iguana
MARKER = "iguana=true"

ENV_CONTAINER_RUNTIME = "IGUANA_CONTAINER_RUNTIME"
ENV_VERBOSE = "IGUANA_VERBOSE"


def runtime_binary() -> str:
    return os.environ.get(ENV_CONTAINER_RUNTIME) or DEFAULT_RUNTIME


def verbose_from_env() -> bool:
    return os.environ.get(ENV_VERBOSE) is not None
