import pytest

from iguana_workflow.errors import JobConfigurationError, JobError, RuntimeCommandError
from iguana_workflow.executor import JobExecutor, merge_env
from iguana_workflow.models import Container, Job, Step


def run_argv(runtime, image):
    return [inv.argv for inv in runtime.invocations if inv.action == "run" and inv.argv[-1] == image]


def env_flags(argv):
    return [a for a in argv if a.startswith("--env=") and a != "--env=iguana=true"]


@pytest.fixture
def job_with_services():
    return Job(
        container=Container(image="main", env={"SHARED": "main", "MAIN_ONLY": "1"}),
        services={
            "db": Container(image="db-image", env={"SHARED": "db"}),
            "cache": Container(image="cache-image"),
        },
    )


def test_merge_env_later_layers_win():
    assert merge_env({"A": "1", "B": "2"}, {"B": "3"}, None) == {"A": "1", "B": "3"}


def test_merge_env_returns_fresh_mapping():
    base = {"A": "1"}
    merged = merge_env(base, {"B": "2"})
    merged["C"] = "3"
    assert base == {"A": "1"}


class TestExecute:
    def test_empty_image_fails_without_invocations(self, runtime):
        job = Job(container=Container(image=""), services={"db": Container(image="db-image")})
        with pytest.raises(JobConfigurationError, match="No image specified for job broken"):
            JobExecutor(runtime).execute("broken", job)
        assert runtime.invocations == []

    def test_main_container_pulled_then_run(self, runtime):
        JobExecutor(runtime).execute("build", Job(container=Container(image="app")))
        assert [(inv.action, inv.argv[-1]) for inv in runtime.invocations] == [("pull", "app"), ("run", "app")]

    def test_main_env_overlays_inherited(self, runtime):
        job = Job(container=Container(image="app", env={"B": "job", "C": "job"}))
        JobExecutor(runtime).execute("build", job, {"A": "wf", "B": "wf"})
        [argv] = run_argv(runtime, "app")
        assert env_flags(argv) == ["--env=A=wf", "--env=B=job", "--env=C=job"]

    def test_services_started_before_main(self, runtime, job_with_services):
        JobExecutor(runtime).execute("install", job_with_services)
        order = [(inv.action, inv.argv[-1]) for inv in runtime.invocations]
        assert order == [
            ("pull", "db-image"),
            ("run", "db-image"),
            ("pull", "cache-image"),
            ("run", "cache-image"),
            ("pull", "main"),
            ("run", "main"),
        ]
        [db_argv] = run_argv(runtime, "db-image")
        assert "--detach" in db_argv
        assert "--name=iguana-install-db" in db_argv

    def test_service_env_isolated(self, runtime, job_with_services):
        JobExecutor(runtime).execute("install", job_with_services, {"WF": "1"})
        [db_argv] = run_argv(runtime, "db-image")
        [cache_argv] = run_argv(runtime, "cache-image")
        assert env_flags(db_argv) == ["--env=WF=1", "--env=SHARED=db"]
        assert env_flags(cache_argv) == ["--env=WF=1"]

    def test_failed_service_still_attempts_others(self, failing_runtime, job_with_services):
        runtime = failing_runtime("db-image")
        with pytest.raises(JobError, match="install") as exc_info:
            JobExecutor(runtime).execute("install", job_with_services)
        assert exc_info.value.job == "install"
        assert "db" in str(exc_info.value)
        order = [(inv.action, inv.argv[-1]) for inv in runtime.invocations]
        assert ("pull", "cache-image") in order
        assert ("run", "cache-image") in order
        assert ("pull", "main") not in order
        assert run_argv(runtime, "main") == []

    def test_main_pull_failure(self, failing_runtime):
        runtime = failing_runtime("app")
        with pytest.raises(JobError, match="Unable to prepare image app") as exc_info:
            JobExecutor(runtime).execute("build", Job(container=Container(image="app")))
        assert isinstance(exc_info.value.__cause__, RuntimeCommandError)
        assert [inv.action for inv in runtime.invocations] == ["pull"]

    def test_main_run_failure(self, failing_runtime):
        runtime = failing_runtime("--interactive")
        with pytest.raises(JobError, match="Job build failed"):
            JobExecutor(runtime).execute("build", Job(container=Container(image="app")))
        assert [inv.action for inv in runtime.invocations] == ["pull", "run"]

    def test_steps_are_not_executed(self, runtime):
        job = Job(container=Container(image="app"), steps=[Step(run="make")])
        JobExecutor(runtime).execute("build", job)
        assert all("make" not in inv.argv for inv in runtime.invocations)

    def test_volume_failure_fails_job(self, failing_runtime):
        runtime = failing_runtime("volume")
        job = Job(container=Container(image="app", volumes=["data:/data"]))
        with pytest.raises(JobError, match="Job build failed") as exc_info:
            JobExecutor(runtime).execute("build", job)
        assert exc_info.value.job == "build"
        assert isinstance(exc_info.value.__cause__, RuntimeCommandError)
        assert [inv.action for inv in runtime.invocations] == ["pull", "create_volume"]

    def test_service_volume_failure_fails_service(self, failing_runtime):
        runtime = failing_runtime("volume")
        job = Job(
            container=Container(image="main"),
            services={"db": Container(image="db-image", volumes=["dbdata:/var/lib/db"])},
        )
        with pytest.raises(JobError, match="Failed to start services db"):
            JobExecutor(runtime).execute("install", job)
        assert [inv.action for inv in runtime.invocations] == ["pull", "create_volume"]

    def test_started_services_tracked(self, failing_runtime, job_with_services):
        runtime = failing_runtime("--name=iguana-install-db")
        executor = JobExecutor(runtime)
        with pytest.raises(JobError):
            executor.execute("install", job_with_services)
        assert executor.started_services == {"install": ["cache"]}

    def test_service_names_scoped_to_job(self, runtime):
        executor = JobExecutor(runtime)
        service = {"dbus": Container(image="dbus-image")}
        executor.execute("first", Job(container=Container(image="a"), services=service))
        executor.execute("second", Job(container=Container(image="b"), services=service))
        names = [a for inv in runtime.invocations for a in inv.argv if a.startswith("--name=")]
        assert names == ["--name=iguana-first-dbus", "--name=iguana-second-dbus"]
