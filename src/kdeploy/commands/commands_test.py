from pathlib import Path
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from kdeploy.commands import app
from kdeploy.deployment import KUBERNETES_SECRET_NAME_PROP, CommandState, ErrorInfo, TaskResult

runner = CliRunner()


@pytest.fixture
def run(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """
    Replaces the cluster connection and the deployment run of `kdeploy apply`.
    """

    monkeypatch.setattr("kdeploy.commands.apply.new_api_client", MagicMock())
    run = MagicMock(return_value=TaskResult(CommandState.SUCCESS))
    monkeypatch.setattr("kdeploy.commands.apply.DeploymentTask.run", run)
    return run


def test__secret_name__configured() -> None:
    result = runner.invoke(app, ["secret-name", "--name", "pull-$BUILD"], env={"BUILD": "42"})
    assert result.exit_code == 0
    assert result.stdout.strip() == "pull-42"


def test__secret_name__generated() -> None:
    result = runner.invoke(app, ["secret-name", "--seed", "My Job"])
    assert result.exit_code == 0
    assert result.stdout.strip().startswith("kdeploy-my-job")


def test__secret_name__invalid() -> None:
    result = runner.invoke(app, ["secret-name", "--name", "Not_Valid"])
    assert result.exit_code == 1


def test__apply__prints_exported_variables(tmp_path: Path, run: MagicMock) -> None:
    run.return_value = TaskResult(CommandState.SUCCESS, extra_env_vars={KUBERNETES_SECRET_NAME_PROP: "pull secret"})
    (tmp_path / "kdeploy.yaml").write_text("configs: '*.yaml'\n")

    result = runner.invoke(app, ["apply", "--config", str(tmp_path / "kdeploy.yaml")])

    assert result.exit_code == 0
    assert result.stdout == "export KUBERNETES_SECRET_NAME='pull secret'\n"


def test__apply__options_override_the_configuration_file(
    tmp_path: Path, run: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    tasks = []
    monkeypatch.setattr(
        "kdeploy.commands.apply.DeploymentTask.run", lambda self: tasks.append(self) or TaskResult(CommandState.SUCCESS)
    )
    (tmp_path / "kdeploy.yaml").write_text(
        "configs: '*.yaml'\nsecret_namespace: build\ngovernance: {app_code: shop, tenant_code: acme}\n"
    )

    result = runner.invoke(
        app,
        ["apply", "-c", str(tmp_path / "kdeploy.yaml"), "--configs", "k8s/*.yml", "--project-name", "storefront"],
    )

    assert result.exit_code == 0, result.output
    (task,) = tasks
    assert task.workspace == tmp_path
    assert task.config_paths == "k8s/*.yml"
    assert task.secret_namespace == "build"
    assert task.governance.enabled
    assert task.default_secret_name_seed == tmp_path.name


def test__apply__fails_on_error_result(tmp_path: Path, run: MagicMock) -> None:
    run.return_value = TaskResult(CommandState.HAS_ERROR, error=ErrorInfo("ConfigurationError", "no files"))
    (tmp_path / "kdeploy.yaml").write_text("configs: '*.yaml'\n")

    result = runner.invoke(app, ["apply", "-c", str(tmp_path / "kdeploy.yaml")])

    assert result.exit_code == 1


def test__apply__fails_on_missing_registry_password(tmp_path: Path, run: MagicMock) -> None:
    (tmp_path / "kdeploy.yaml").write_text("registries: [{username: ci, password_env: NOT_SET_ANYWHERE}]\n")

    result = runner.invoke(app, ["apply", "-c", str(tmp_path / "kdeploy.yaml")], env={"NOT_SET_ANYWHERE": ""})

    assert result.exit_code == 1
    run.assert_not_called()


def test__apply__fails_on_malformed_configuration(tmp_path: Path, run: MagicMock) -> None:
    (tmp_path / "kdeploy.yaml").write_text("registries: 42\n")

    result = runner.invoke(app, ["apply", "-c", str(tmp_path / "kdeploy.yaml")])

    assert result.exit_code == 1
    assert not isinstance(result.exception, TypeError)
    run.assert_not_called()
