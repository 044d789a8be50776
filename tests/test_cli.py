"""End-to-end tests for the ``sharefile-sweep`` command against the mock server."""

import json

import pytest
from click.testing import CliRunner
from sharefile_sweep.cli import main
from sharefile_sweep.models import Partition
from tests.mock_sharefile_server import MockShareFileServer


@pytest.fixture
def server():
    with MockShareFileServer(token="cli-token") as s:
        s.add_user("E1", Partition.EMPLOYEE, "e1@x.com", disabled=True)
        s.add_user("E2", Partition.EMPLOYEE, "e2@x.com")
        s.add_user("E3", Partition.EMPLOYEE, "e3@x.com", disabled=True)
        s.add_user("E9", Partition.EMPLOYEE, "admin@x.com")
        s.add_user("C1", Partition.CLIENT, "c1@x.com")
        s.add_user("C2", Partition.CLIENT, "c2@x.com", disabled=True)
        yield s


@pytest.fixture
def env(server):
    return {
        "SHAREFILE_BASE_URL": server.base_url,
        "SHAREFILE_TOKEN": "cli-token",
        "SHAREFILE_LOG_LEVEL": "ERROR",
    }


@pytest.fixture
def invoke(tmp_path, env):
    def _invoke(*args, input=None, env_overrides=None):
        full_env = dict(env, **(env_overrides or {}))
        base = ["--config", str(tmp_path / "absent.json"),
                "--work-dir", str(tmp_path / "work")]
        return CliRunner().invoke(main, base + list(args), env=full_env, input=input)
    return _invoke


def test_live_run_with_yes(invoke, server, tmp_path):
    result = invoke("--admin", "admin@x.com", "--yes", "--json")
    assert result.exit_code == 0, result.output
    report = json.loads(result.output)
    assert report["summary"]["succeeded"] == 3
    assert report["summary"]["failed"] == 0
    assert report["admin"]["id"] == "E9"

    deletes = server.deletes()
    assert [path for path, _ in deletes] == ["/Users(E1)", "/Users(E3)", "/Users(C2)"]
    for _, query in deletes:
        assert query == {"completely": "true", "itemsReassignTo": "E9", "groupsReassignTo": "E9"}
    assert (tmp_path / "work" / "employee.csv").is_file()
    assert (tmp_path / "work" / "client.csv").is_file()


def test_dry_run(invoke, server):
    result = invoke("--admin", "E9", "--dry-run", "--json")
    assert result.exit_code == 0, result.output
    report = json.loads(result.output)
    assert report["dry_run"] is True
    assert report["summary"]["skipped"] == 3
    assert server.deletes() == []


def test_prompt_per_user(invoke, server):
    result = invoke("--admin", "admin@x.com", input="y\nn\ny\n")
    assert result.exit_code == 0, result.output
    assert [path for path, _ in server.deletes()] == ["/Users(E1)", "/Users(C2)"]
    assert "E3" in server.users


def test_unknown_admin_exits_nonzero(invoke, server):
    result = invoke("--admin", "ghost@x.com", "--yes")
    assert result.exit_code == 1
    assert server.deletes() == []
    assert not any(path.startswith("/Users(") for _, path, _ in server.calls)


def test_per_user_failure_is_not_fatal(invoke, server):
    server.failures["delete_errors"] = {"E3"}
    result = invoke("--admin", "admin@x.com", "--yes", "--json")
    assert result.exit_code == 0
    report = json.loads(result.output)
    assert report["summary"]["succeeded"] == 2
    assert report["summary"]["failed"] == 1


def test_missing_credentials_exits_nonzero(invoke):
    result = invoke("--admin", "admin@x.com", "--yes",
                    env_overrides={"SHAREFILE_TOKEN": None})
    assert result.exit_code == 1


def test_refused_password_grant_exits_nonzero(invoke, server):
    server.failures["reject_password"] = True
    result = invoke("--admin", "admin@x.com", "--yes", env_overrides={
        "SHAREFILE_TOKEN": None,
        "SHAREFILE_AUTH_URL": server.token_url,
        "SHAREFILE_CLIENT_ID": "cid",
        "SHAREFILE_CLIENT_SECRET": "secret",
        "SHAREFILE_USERNAME": "ops@x.com",
        "SHAREFILE_PASSWORD": "bad",
    })
    assert result.exit_code == 1
    assert server.deletes() == []


def test_config_file_supplies_connection(tmp_path, server):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"base_url": server.base_url, "token": "cli-token",
                                  "log_level": "ERROR"}))
    result = CliRunner().invoke(main, [
        "--config", str(config), "--work-dir", str(tmp_path / "work"),
        "--admin", "admin@x.com", "--dry-run", "--json",
    ], env={"SHAREFILE_TOKEN": None, "SHAREFILE_BASE_URL": None})
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["summary"]["disabled"] == 3


def test_resume_without_checkpoints_exits_nonzero(invoke, server):
    result = invoke("--admin", "admin@x.com", "--yes", "--resume")
    assert result.exit_code == 1
    assert server.deletes() == []


def test_terminal_summary(invoke):
    result = invoke("--admin", "admin@x.com", "--dry-run")
    assert result.exit_code == 0
    assert "ShareFile Disabled User Sweep" in result.output
    assert "3 disabled" in result.output
    assert "Dry run, nothing was deleted." in result.output


def test_resume_with_corrupt_checkpoint_exits_nonzero(invoke, server, tmp_path):
    work = tmp_path / "work"
    work.mkdir()
    (work / "employee.csv").write_text(
        "UserId,FullName,Email,UserType\nE1,User E1,e1@x.com,Contractor\n", encoding="utf-8",
    )
    (work / "client.csv").write_text(
        "UserId,FullName,Email,UserType\nC2,User C2,c2@x.com,Client\n", encoding="utf-8",
    )
    result = invoke("--admin", "admin@x.com", "--yes", "--resume", "--json")
    assert result.exit_code == 1
    assert "employee.csv is unreadable" in result.output
    assert "Traceback" not in result.output
    assert server.deletes() == []


def test_resume_accepts_checkpoint_saved_with_byte_order_mark(invoke, server, tmp_path):
    work = tmp_path / "work"
    work.mkdir()
    (work / "employee.csv").write_text(
        "\ufeffUserId,FullName,Email,UserType\r\nE1,User E1,e1@x.com,Employee\r\n",
        encoding="utf-8",
    )
    (work / "client.csv").write_text("UserId,FullName,Email,UserType\n", encoding="utf-8")
    result = invoke("--admin", "admin@x.com", "--yes", "--resume", "--json")
    assert result.exit_code == 0, result.output
    assert [path for path, _ in server.deletes()] == ["/Users(E1)"]
