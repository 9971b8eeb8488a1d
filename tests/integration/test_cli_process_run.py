from typer.testing import CliRunner

import vibeflow.cli as cli
import vibeflow.persistence as persistence
from vibeflow.cli import app


def _prepare(tmp_path, monkeypatch, fake_llm):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("VIBEFLOW_CONFIG", raising=False)
    monkeypatch.delenv("VIBEFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("VIBEFLOW_VIBE_EVALUATOR", raising=False)
    monkeypatch.setattr(persistence, "_repository_instance", None)
    monkeypatch.setattr(cli, "get_language_model", lambda *args, **kwargs: fake_llm)


def test_process_run_completes_all_phases(tmp_path, monkeypatch, fake_llm):
    _prepare(tmp_path, monkeypatch, fake_llm)
    (tmp_path / "vibeflow.yaml").write_text(
        f"history_url: sqlite+aiosqlite:///{tmp_path / 'history.db'}\n"
    )

    result = CliRunner().invoke(
        app,
        ["process", "run", "feature-development", "--project", str(tmp_path), "--evaluator", "auto"],
        input="A shopping cart\nyes\nAdd integration tests\n",
    )

    assert result.exit_code == 0, f"Output: {result.output}"
    output = result.stdout
    assert "Phase 1/3: Requirements Analysis" in output
    assert "Phase 3/3: Implementation" in output
    assert "All phases completed" in output
    assert (tmp_path / "history.db").exists()


def test_process_run_aborts_when_retry_declined(tmp_path, monkeypatch, fake_llm):
    _prepare(tmp_path, monkeypatch, fake_llm)
    fake_llm.error = RuntimeError("model unavailable")

    result = CliRunner().invoke(
        app,
        ["process", "run", "feature-development", "--project", str(tmp_path)],
        input="A shopping cart\nn\n",
    )

    assert result.exit_code == 1
    assert "Phase failed" in result.stdout
    assert "model unavailable" in result.stdout
    assert "Execution aborted" in result.stdout


def test_process_run_unknown_process(tmp_path, monkeypatch, fake_llm):
    _prepare(tmp_path, monkeypatch, fake_llm)

    result = CliRunner().invoke(app, ["process", "run", "missing"])

    assert result.exit_code == 1
    assert "Process not found: missing" in result.stdout
