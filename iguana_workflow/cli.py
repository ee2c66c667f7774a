import sys

from iguana_workflow import __version__, config
from iguana_workflow.errors import IguanaError
from iguana_workflow.logger import setup_logging
from iguana_workflow.models import WorkflowOptions
from iguana_workflow.parser import load_workflow
from iguana_workflow.workflow import run_workflow

FLAGS = ("--dry-run", "--debug", "--privileged", "--verbose")


def main(argv: list[str] | None = None):
    try:
        _run(sys.argv[1:] if argv is None else argv)
    except KeyboardInterrupt:
        print()
        sys.exit(130)
    except (IguanaError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


def _run(args: list[str]):
    flags = set()
    workflow_source = config.DEFAULT_WORKFLOW
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("--version", "-V"):
            print(f"iguana-workflow {__version__}")
            sys.exit(0)
        if arg in ("--help", "-h"):
            _print_help()
            sys.exit(0)
        if arg in ("-f", "--workflow"):
            if i + 1 >= len(args):
                print(f"Error: {arg} requires a file or URL argument")
                sys.exit(1)
            workflow_source = args[i + 1]
            i += 2
            continue
        if arg.startswith("--workflow="):
            workflow_source = arg.split("=", 1)[1]
        elif arg in FLAGS:
            flags.add(arg)
        else:
            print(f"Error: Unknown option: {arg}")
            _print_help()
            sys.exit(1)
        i += 1

    logger = setup_logging(verbose="--verbose" in flags)

    options = WorkflowOptions(
        dry_run="--dry-run" in flags,
        debug="--debug" in flags,
        privileged="--privileged" in flags,
        runtime_binary=config.runtime_binary(),
    )

    print(f"Using workflow file {workflow_source}")
    workflow = load_workflow(workflow_source)
    run_workflow(workflow, options, logger=logger)
    print("Iguana workflow finished successfully")
    sys.exit(0)


def _print_help():
    print(f"iguana-workflow {__version__}: run container jobs from an iguana workflow")
    print()
    print("Usage: iguana-workflow [options]")
    print()
    print("Options:")
    print(f"  -f, --workflow <file|url>  Workflow file or URL (default: {config.DEFAULT_WORKFLOW})")
    print("  --dry-run                  Log runtime commands without executing them")
    print("  --debug                    Keep containers and images after the run")
    print("  --privileged               Run containers privileged with /dev mounted")
    print("  --verbose                  Show debug output")
    print("  --version, -V              Show version")
    print("  --help, -h                 Show this help")
    print()
    print("Environment:")
    print(f"  {config.ENV_CONTAINER_RUNTIME}  Container runtime binary (default: {config.DEFAULT_RUNTIME})")
    print(f"  {config.ENV_VERBOSE}            Show debug output when set")


if __name__ == "__main__":
    main()
