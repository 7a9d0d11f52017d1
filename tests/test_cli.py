from __future__ import annotations

import json

import pytest
from rich.console import Console

from fixtures import SAMPLE_TEXT, FakeChatClient

from quizmaster import cli
import quizmaster.generator as generator_mod
from quizmaster.errors import GenerationError


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("QUIZMASTER_CONFIG", raising=False)
    monkeypatch.setenv("QUIZMASTER_LOG_DIR", str(tmp_path / "logs"))
    yield


@pytest.fixture
def bank_file(tmp_path):
    path = tmp_path / "bank.txt"
    path.write_text(SAMPLE_TEXT, encoding="utf-8")
    return path


def make_console() -> Console:
    return Console(record=True, width=100, force_terminal=True)


def feed_input(monkeypatch, answers: list[str]) -> None:
    iterator = iter(answers)
    monkeypatch.setattr("builtins.input", lambda *args: next(iterator))


def test_parse_reports_counts(bank_file):
    console = make_console()

    code = cli.main(["parse", str(bank_file)], console=console)

    rendered = console.export_text()
    assert code == 0
    assert "2 question(s) found" in rendered
    assert "1 block(s) skipped" in rendered


def test_parse_json_prints_one_object_per_question(bank_file, capsys):
    code = cli.main(["parse", str(bank_file), "--json"], console=make_console())

    lines = capsys.readouterr().out.strip().splitlines()
    assert code == 0
    assert [json.loads(line)["correct"] for line in lines] == ["B", ["A", "C"]]


def test_parse_missing_file_returns_error(tmp_path):
    console = make_console()

    code = cli.main(["parse", str(tmp_path / "missing.txt")], console=console)

    assert code == 1
    assert "Cannot read" in console.export_text()


def test_exam_runs_in_file_order(bank_file, monkeypatch, tmp_path):
    feed_input(monkeypatch, ["b", "a,c"])
    console = make_console()

    code = cli.main(["exam", str(bank_file), "--no-shuffle"], console=console)

    rendered = console.export_text()
    assert code == 0
    assert "Which planet is known as the Red Planet?" in rendered
    assert "100.0%" in rendered
    assert "Excellent!" in rendered
    log_text = (tmp_path / "logs" / "quizmaster.log").read_text(encoding="utf-8")
    assert "Exam completed" in log_text


def test_exam_quit_returns_nonzero(bank_file, monkeypatch):
    feed_input(monkeypatch, ["quit"])

    code = cli.main(["exam", str(bank_file), "--num", "1"], console=make_console())

    assert code == 1


def test_game_runs_without_timer(bank_file, monkeypatch):
    feed_input(monkeypatch, ["b", "a,c"])
    config_path = bank_file.parent / "quizmaster.toml"
    config_path.write_text(
        "[arcade]\nfeedback_dwell_ms = 0\n", encoding="utf-8"
    )
    console = make_console()

    code = cli.main(
        ["game", str(bank_file), "--no-timer", "--num", "1"], console=console
    )

    assert code == 0
    assert "Game Over" in console.export_text()


def test_exam_with_no_valid_questions(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("nothing to see here", encoding="utf-8")
    console = make_console()

    code = cli.main(["exam", str(path)], console=console)

    assert code == 1
    assert "No valid questions" in console.export_text()


def test_generate_writes_output(monkeypatch, tmp_path):
    client = FakeChatClient()
    client.queue_response(SAMPLE_TEXT)
    monkeypatch.setattr(generator_mod, "load_client", lambda: client)
    output = tmp_path / "out" / "generated.txt"
    console = make_console()

    code = cli.main(
        ["generate", "Space", "--count", "3", "--output", str(output)],
        console=console,
    )

    assert code == 0
    assert output.read_text(encoding="utf-8").startswith("Q1:")
    assert "2 of 3 requested question(s) parsed" in console.export_text()
    assert "Space" in client.calls[0]["messages"][1]["content"]


def test_generate_reports_failures(monkeypatch):
    def no_key():
        raise GenerationError("OPENAI_API_KEY not found in environment.")

    monkeypatch.setattr(generator_mod, "load_client", no_key)
    console = make_console()

    code = cli.main(["generate", "Space"], console=console)

    assert code == 1
    assert "OPENAI_API_KEY" in console.export_text()


def test_config_init_writes_template(tmp_path):
    console = make_console()

    assert cli.main(["config", "init"], console=console) == 0
    assert (tmp_path / "quizmaster.toml").exists()
    assert cli.main(["config", "init"], console=console) == 1
    assert cli.main(["config", "init", "--force"], console=console) == 0


def test_invalid_config_is_a_usage_error(tmp_path, bank_file):
    (tmp_path / "quizmaster.toml").write_text("[exam]\nbogus = 1\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        cli.main(["parse", str(bank_file)], console=make_console())

    assert exc.value.code == 2


def test_merge_creates_bank_then_discards_duplicates(bank_file, tmp_path):
    target = tmp_path / "banks" / "chemistry.json"

    first = make_console()
    assert cli.main(["merge", str(target), str(bank_file)], console=first) == 0
    second = make_console()
    assert cli.main(["merge", str(target), str(bank_file)], console=second) == 0

    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["title"] == "chemistry"
    assert [q["id"] for q in data["questions"]] == ["1", "2"]
    assert "2 new question(s) added, 0 duplicate(s) discarded" in first.export_text()
    assert "0 new question(s) added, 2 duplicate(s) discarded" in second.export_text()


def test_merge_overwrite_policy_from_flag_and_config(bank_file, tmp_path):
    target = tmp_path / "bank.json"
    extra = tmp_path / "extra.txt"
    extra.write_text(
        "Q1: Which planet is largest?\nA. Mars\n*B. Jupiter\nC. Venus\nD. Earth",
        encoding="utf-8",
    )
    cli.main(["merge", str(target), str(bank_file)], console=make_console())
    cli.main(["merge", str(target), str(extra)], console=make_console())

    flagged = make_console()
    code = cli.main(
        ["merge", str(target), str(bank_file), "--duplicates", "overwrite"],
        console=flagged,
    )
    assert code == 0
    assert "2 duplicate(s) overwritten" in flagged.export_text()
    texts = [q["text"] for q in json.loads(target.read_text("utf-8"))["questions"]]
    assert texts[0] == "Which planet is largest?"
    assert len(texts) == 3

    (tmp_path / "quizmaster.toml").write_text(
        '[merge]\nduplicates = "overwrite"\n', encoding="utf-8"
    )
    from_config = make_console()
    assert cli.main(["merge", str(target), str(extra)], console=from_config) == 0
    assert "1 duplicate(s) overwritten" in from_config.export_text()
    texts = [q["text"] for q in json.loads(target.read_text("utf-8"))["questions"]]
    assert texts[-1] == "Which planet is largest?"


def test_merge_rejects_unreadable_bank(bank_file, tmp_path):
    target = tmp_path / "broken.json"
    target.write_text("{not json", encoding="utf-8")
    console = make_console()

    code = cli.main(["merge", str(target), str(bank_file)], console=console)

    assert code == 1
    assert "Cannot load bank" in console.export_text()
    assert target.read_text(encoding="utf-8") == "{not json"
