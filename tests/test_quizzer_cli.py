from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console

from adaptive_quizzer.quizzer import _main
from fixtures import make_bank, record

BANK = make_bank(
    record("Capital of France?", topic="Geography"),
    record("Largest planet?", topic="Astronomy", weight=2),
    record("Boiling point of water?", topic="Physics", tag="Medium"),
)


def _console() -> Console:
    return Console(record=True, width=120)


def _always(answer: str):
    return lambda: answer


def _env(home: Path) -> dict[str, str]:
    return {"ADAPTIVE_QUIZZER_HOME": str(home)}


def test_play_runs_session_and_exports_results(workspace, tmp_path) -> None:
    bank = workspace.write("bank.txt", BANK)
    home = tmp_path / "home"
    console = _console()

    code = _main.play_main(
        [str(bank), "--seed", "3", "--delay", "0"],
        console=console,
        input_provider=_always("A"),
        env=_env(home),
    )

    assert code == 0
    csv_files = list((home / "results").glob("Adaptive_QuizResults_Level1_*.csv"))
    json_files = list((home / "results").glob("*.json"))
    assert len(csv_files) == 1
    assert len(json_files) == 1
    csv_text = csv_files[0].read_text(encoding="utf-8")
    assert "Total Score,'3/20'" in csv_text
    assert "Geography,0.81" in csv_text
    report = json.loads(json_files[0].read_text(encoding="utf-8"))
    assert report["score"] == 3
    assert report["served"] == 3
    rendered = console.export_text()
    assert "Quiz Summary" in rendered
    assert "Results saved to" in rendered

    log_text = (home / "logs" / "adaptive_quizzer.log").read_text(encoding="utf-8")
    messages = [json.loads(line)["message"] for line in log_text.splitlines()]
    assert "Started quiz session" in messages
    assert "Wrote session CSV" in messages


def test_play_respects_no_export_and_overrides(workspace, tmp_path) -> None:
    bank = workspace.write("bank.txt", BANK)
    home = tmp_path / "home"

    code = _main.play_main(
        [str(bank), "--no-export", "--num", "1", "--mode", "adaptive", "--delay", "0"],
        console=_console(),
        input_provider=_always("b"),
        env=_env(home),
    )

    assert code == 0
    assert not list((home / "results").iterdir())


def test_play_fixed_mode_from_config(workspace, tmp_path) -> None:
    banks = tmp_path / "banks"
    workspace.write("banks/questions2.txt", BANK)
    config = workspace.write(
        "quizzer.toml",
        f"""
[session]
mode = "fixed"
level = 2
next_question_delay = 0

[fixed]
easy_questions = 1
medium_questions = 1
hard_questions = 0

[bank]
directory = "{banks.as_posix()}"

[export]
json = false
""",
    )
    home = tmp_path / "home"

    code = _main.play_main(
        ["--config", str(config)],
        console=_console(),
        input_provider=_always("1"),
        env=_env(home),
    )

    assert code == 0
    (csv_file,) = (home / "results").glob("*.csv")
    assert csv_file.name.startswith("Fixed_QuizResults_Level2_")
    assert "Total Score,'2/2'" in csv_file.read_text(encoding="utf-8")
    assert not list((home / "results").glob("*.json"))


def test_play_missing_bank_is_usage_error(tmp_path) -> None:
    console = _console()

    code = _main.play_main(
        [str(tmp_path / "absent.txt")],
        console=console,
        input_provider=_always("A"),
        env=_env(tmp_path / "home"),
    )

    assert code == 2
    assert "Question bank not found" in console.export_text()


def test_play_invalid_bank_is_failure(workspace, tmp_path) -> None:
    bank = workspace.write("bank.txt", make_bank(record("Broken", answer=8)))
    console = _console()

    code = _main.play_main(
        [str(bank)],
        console=console,
        input_provider=_always("A"),
        env=_env(tmp_path / "home"),
    )

    assert code == 1
    assert "Invalid question bank" in console.export_text()


def test_play_invalid_level_override_is_usage_error(workspace, tmp_path) -> None:
    bank = workspace.write("bank.txt", BANK)

    code = _main.play_main(
        [str(bank), "--level", "0"],
        console=_console(),
        input_provider=_always("A"),
        env=_env(tmp_path / "home"),
    )

    assert code == 2


def test_play_reports_export_failure(workspace, tmp_path) -> None:
    bank = workspace.write("bank.txt", BANK)
    blocker = workspace.write("blocker", "not a directory")
    config = workspace.write(
        "quizzer.toml",
        f'[export]\nresults_dir = "{(blocker / "out").as_posix()}"\n',
    )
    console = _console()

    code = _main.play_main(
        [str(bank), "--config", str(config), "--delay", "0"],
        console=console,
        input_provider=_always("A"),
        env=_env(tmp_path / "home"),
    )

    assert code == 1
    assert "Could not save results" in console.export_text()


def test_check_summarises_bank(workspace) -> None:
    bank = workspace.write(
        "bank.txt", BANK + "\n" + make_bank(record("Broken", answer=8))
    )
    console = _console()

    code = _main.check_main([str(bank)], console=console)

    rendered = console.export_text()
    assert code == 0
    assert "3 question(s)" in rendered
    assert "Geography" in rendered
    assert "Skipped record" in rendered


def test_check_strict_rejects_malformed_bank(workspace) -> None:
    bank = workspace.write(
        "bank.txt", BANK + "\n" + make_bank(record("Broken", answer=8))
    )
    console = _console()

    assert _main.check_main([str(bank), "--strict"], console=console) == 1
    assert "Invalid question bank" in console.export_text()


def test_check_missing_file(tmp_path) -> None:
    console = _console()

    assert _main.check_main([str(tmp_path / "nope.txt")], console=console) == 1


def test_report_renders_saved_json(workspace, tmp_path) -> None:
    bank = workspace.write("bank.txt", BANK)
    home = tmp_path / "home"
    _main.play_main(
        [str(bank), "--delay", "0"],
        console=_console(),
        input_provider=_always("A"),
        env=_env(home),
    )
    (saved,) = (home / "results").glob("*.json")
    console = _console()

    code = _main.report_main([str(saved)], console=console)

    rendered = console.export_text()
    assert code == 0
    assert "Quiz Summary" in rendered
    assert "Astronomy" in rendered


def test_report_rejects_bad_files(workspace, tmp_path) -> None:
    broken = workspace.write("broken.json", "{not json")
    wrong_shape = workspace.write("list.json", "[1, 2]")
    console = _console()

    assert _main.report_main([str(broken)], console=console) == 1
    assert _main.report_main([str(wrong_shape)], console=console) == 1
    assert _main.report_main([str(tmp_path / "missing.json")], console=console) == 1


def test_play_unreadable_bank_is_usage_error(workspace, tmp_path) -> None:
    bank = tmp_path / "latin1.txt"
    bank.write_bytes("Q: Café?\n".encode("latin-1"))
    console = _console()

    code = _main.play_main(
        [str(bank)],
        console=console,
        input_provider=_always("A"),
        env=_env(tmp_path / "home"),
    )

    assert code == 2
    assert "Cannot read question bank" in console.export_text()


def test_play_directory_as_bank_is_usage_error(tmp_path) -> None:
    folder = tmp_path / "banks"
    folder.mkdir()

    code = _main.play_main(
        [str(folder)],
        console=_console(),
        input_provider=_always("A"),
        env=_env(tmp_path / "home"),
    )

    assert code == 2


def test_check_unreadable_bank_fails(tmp_path) -> None:
    bank = tmp_path / "latin1.txt"
    bank.write_bytes("Q: Café?\n".encode("latin-1"))
    folder = tmp_path / "folder"
    folder.mkdir()
    console = _console()

    assert _main.check_main([str(bank)], console=console) == 1
    assert _main.check_main([str(folder)], console=console) == 1
    assert "Cannot read question bank" in console.export_text()
