import json
import uuid

import pytest

from campus_rbac import cli
from campus_rbac.api.v1.schemas import DriftEntry, DriftReport, OrphanRepairReport, SyncCatalogReport


def fake_run(report, calls):
    async def run(command, default_branch=None):
        calls.append((command, default_branch))
        return report
    return run


class TestParser:

    @pytest.mark.parametrize("command", ["seed", "sync-catalog", "backfill", "repair-orphans", "drift"])
    def test_every_command_parses(self, command):
        assert cli.build_parser().parse_args([command]).command == command

    def test_default_branch_must_be_a_uuid(self):
        branch = uuid.uuid4()
        args = cli.build_parser().parse_args(["repair-orphans", "--default-branch", str(branch)])
        assert args.default_branch == branch

        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["repair-orphans", "--default-branch", "main-campus"])

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestMain:

    def test_prints_report_as_json(self, monkeypatch, capsys):
        calls = []
        role_id = uuid.uuid4()
        report = DriftReport(orphan_roles=[DriftEntry(role_id=role_id, role_name="Counselor")])
        monkeypatch.setattr(cli, "run", fake_run(report, calls))

        assert cli.main(["drift"]) == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed["orphan_roles"][0]["role_id"] == str(role_id)
        assert calls == [("drift", None)]

    def test_report_error_exits_non_zero(self, monkeypatch):
        branch = uuid.uuid4()
        calls = []
        monkeypatch.setattr(cli, "run", fake_run(OrphanRepairReport(error="No active branch"), calls))

        assert cli.main(["repair-orphans", "--default-branch", str(branch)]) == 1
        assert calls == [("repair-orphans", branch)]

    def test_interrupted_run_exits_130(self, monkeypatch):
        monkeypatch.setattr(cli, "run", fake_run(SyncCatalogReport(stopped=True), []))
        assert cli.main(["sync-catalog"]) == 130
