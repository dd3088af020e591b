from pathlib import Path

import pytest

import statusboard.__main__ as cli
from fakes import T0
from statusboard.errors import DegenerateNetworkError
from statusboard.outcomes import DomainResult, Outcome, Snapshot


class StubCoordinator:
    fail = False

    def __init__(self, roster, config):
        self.roster = roster

    async def collect(self) -> Snapshot:
        if self.fail:
            raise DegenerateNetworkError(2)
        results = tuple(
            DomainResult(d, Outcome.correct_redirect(301), Outcome.ok(200))
            for d in sorted(self.roster.domains, key=lambda d: d.id)
        )
        return Snapshot(results=results, created_at=T0)


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch):
    roster = tmp_path / "roster.yaml"
    roster.write_text("- {id: 2, hostname: b.example}\n- {id: 1, hostname: a.example}\n", encoding="utf-8")
    config = tmp_path / "config.yaml"
    config.write_text(f"results_dir: {tmp_path / 'out'}\n", encoding="utf-8")
    monkeypatch.setattr(cli, "Coordinator", StubCoordinator)
    monkeypatch.setattr(StubCoordinator, "fail", False)
    return tmp_path, ["--config", str(config), "--roster", str(roster)]


def test_one_shot_run_prints_and_exports(workspace, capsys):
    tmp_path, args = workspace

    assert cli.main(args) == 0

    out = capsys.readouterr().out
    assert "2024-03-01 12:00:00 UTC" in out
    assert out.index("a.example") < out.index("b.example")
    assert (tmp_path / "out" / "latest.csv").exists()


def test_no_export(workspace):
    tmp_path, args = workspace
    assert cli.main(args + ["--no-export"]) == 0
    assert not (tmp_path / "out").exists()


def test_fatal_round_exits_non_zero(workspace, monkeypatch):
    _, args = workspace
    monkeypatch.setattr(StubCoordinator, "fail", True)
    assert cli.main(args) == 1


def test_bad_roster_exits_with_usage_error(tmp_path: Path):
    roster = tmp_path / "roster.yaml"
    roster.write_text("[]\n", encoding="utf-8")
    assert cli.main(["--config", str(tmp_path / "none.yaml"), "--roster", str(roster)]) == 2
