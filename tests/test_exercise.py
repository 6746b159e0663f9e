import os
import subprocess
from pathlib import Path
from unittest import mock

import pytest

from rustlings.exercise import (
    CLIPPY_CARGO_TOML_PATH,
    BUILD_SCRIPT_CARGO_TOML_PATH,
    CompilationError,
    ContextLine,
    Exercise,
    ExecutionError,
    ExerciseOutput,
    Mode,
    State,
    clean,
    load_exercises,
    temp_file,
)

PENDING = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED = "// fake_exercise\n\nfn main() {\n\n}\n"
TEST_SUCCESS = (
    "#[test]\nfn passing() {\n"
    '    println!("THIS TEST TOO SHALL PASS");\n    assert!(true);\n}\n'
)


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def _completed(code=0, stdout=b"", stderr=b""):
    return subprocess.CompletedProcess(args=[], returncode=code, stdout=stdout, stderr=stderr)


def test_clean(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path(temp_file()).touch()
    exercise = Exercise("example", _write(tmp_path, "pending_exercise.rs", PENDING), Mode.COMPILE, "")
    with mock.patch("subprocess.run", return_value=_completed()) as run:
        compiled = exercise.compile()
    compiled.close()
    assert not Path(temp_file()).exists()
    assert run.call_args.args[0][0] == "rustc"


def test_context_manager_cleans(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    exercise = Exercise("example", _write(tmp_path, "a.rs", PENDING), Mode.COMPILE, "")
    with mock.patch("subprocess.run", return_value=_completed()):
        with exercise.compile():
            Path(temp_file()).touch()
            assert Path(temp_file()).exists()
    assert not Path(temp_file()).exists()


def test_clean_without_file_is_harmless(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    clean()
    assert not Path(temp_file()).exists()


def test_temp_file_contains_pid():
    assert temp_file().startswith(f"./temp_{os.getpid()}_")


def test_pending_state(tmp_path):
    exercise = Exercise("pending_exercise", _write(tmp_path, "p.rs", PENDING), Mode.COMPILE, "")
    expected = (
        ContextLine("// fake_exercise", 1, False),
        ContextLine("", 2, False),
        ContextLine("// I AM NOT DONE", 3, True),
        ContextLine("", 4, False),
        ContextLine("fn main() {", 5, False),
    )
    state = exercise.state()
    assert state == State(expected)
    assert state.done() is False
    assert exercise.looks_done() is False


def test_finished_exercise(tmp_path):
    exercise = Exercise("finished_exercise", _write(tmp_path, "f.rs", FINISHED), Mode.COMPILE, "")
    assert exercise.state() == State()
    assert exercise.looks_done() is True


def test_marker_on_first_line(tmp_path):
    source = "// I AM NOT DONE\n\n#[test]\nfn it_works() {}\n"
    exercise = Exercise("t", _write(tmp_path, "t.rs", source), Mode.TEST, "")
    context = exercise.state().context
    assert [c.number for c in context] == [1, 2, 3]
    assert [c.important for c in context] == [True, False, False]


def test_triple_slash_and_indentation(tmp_path):
    source = "fn main() {\n    ///  I  AM   NOT DONE\n}\n"
    exercise = Exercise("t", _write(tmp_path, "t.rs", source), Mode.COMPILE, "")
    context = exercise.state().context
    assert [c.line for c in context] == ["fn main() {", "    ///  I  AM   NOT DONE", "}"]
    assert context[1].important


def test_crlf_lines(tmp_path):
    path = tmp_path / "w.rs"
    path.write_bytes(b"a\r\n// I AM NOT DONE\r\nb\r\n")
    context = Exercise("w", path, Mode.COMPILE).state().context
    assert [c.line for c in context] == ["a", "// I AM NOT DONE", "b"]


def test_marker_split_across_lines_is_an_error(tmp_path):
    exercise = Exercise("s", _write(tmp_path, "s.rs", "// I\nAM NOT DONE\n"), Mode.COMPILE)
    with pytest.raises(RuntimeError):
        exercise.state()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Exercise("m", tmp_path / "missing.rs", Mode.COMPILE).state()


def test_exercise_with_output(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    exercise = Exercise("exercise_with_output", _write(tmp_path, "testSuccess.rs", TEST_SUCCESS), Mode.TEST)
    with mock.patch(
        "subprocess.run",
        side_effect=[_completed(), _completed(stdout=b"THIS TEST TOO SHALL PASS\n")],
    ) as run:
        with exercise.compile() as compiled:
            out = compiled.run()
    assert "THIS TEST TOO SHALL PASS" in out.stdout
    assert "--test" in run.call_args_list[0].args[0]
    assert run.call_args_list[1].args[0] == [temp_file(), "--show-output"]


def test_compile_failure(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path(temp_file()).touch()
    exercise = Exercise("compFailure", _write(tmp_path, "c.rs", "fn main() {\n    let\n}\n"), Mode.COMPILE)
    with mock.patch("subprocess.run", return_value=_completed(1, stderr=b"error: expected pattern")):
        with pytest.raises(CompilationError) as info:
            exercise.compile()
    assert info.value.output == ExerciseOutput("", "error: expected pattern")
    assert not Path(temp_file()).exists()


def test_run_failure(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    exercise = Exercise("testNotPassed", _write(tmp_path, "n.rs", "fn main() {}\n"), Mode.COMPILE)
    with mock.patch(
        "subprocess.run",
        side_effect=[_completed(), _completed(101, stdout=b"out", stderr=b"panicked")],
    ) as run:
        with exercise.compile() as compiled:
            with pytest.raises(ExecutionError) as info:
                compiled.run()
    assert info.value.output == ExerciseOutput("out", "panicked")
    assert run.call_args_list[1].args[0] == [temp_file()]


def test_missing_compiler(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    exercise = Exercise("x", _write(tmp_path, "x.rs", FINISHED), Mode.COMPILE)
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
        with pytest.raises(RuntimeError):
            exercise.compile()


def test_clippy_compile_runs_cargo(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "exercises" / "clippy").mkdir(parents=True)
    exercise = Exercise("clippy1", _write(tmp_path, "clippy1.rs", FINISHED), Mode.CLIPPY)
    with mock.patch("subprocess.run", return_value=_completed(stdout=b"clippy ran")) as run:
        with exercise.compile() as compiled:
            output = compiled.run()
    assert output == ExerciseOutput("clippy ran", "")
    commands = [call.args[0] for call in run.call_args_list]
    assert commands[0][0] == "rustc"
    assert commands[1][:2] == ["cargo", "clean"]
    assert commands[2][:2] == ["cargo", "clippy"]
    assert commands[2][-4:] == ["-D", "warnings", "-D", "clippy::float_cmp"]
    assert commands[3] == [temp_file()]
    manifest = Path(CLIPPY_CARGO_TOML_PATH).read_text(encoding="utf-8")
    assert 'name = "clippy1"' in manifest
    assert 'path = "clippy1.rs"' in manifest


def test_clippy_manifest_write_failure(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NO_EMOJI", "1")
    exercise = Exercise("clippy1", _write(tmp_path, "clippy1.rs", FINISHED), Mode.CLIPPY)
    with mock.patch("subprocess.run", return_value=_completed()):
        with pytest.raises(RuntimeError, match="Failed to write Clippy Cargo.toml file."):
            exercise.compile()


def test_build_script_runs_cargo_test_and_skips_run(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "exercises" / "tests").mkdir(parents=True)
    exercise = Exercise("build", _write(tmp_path, "build.rs", FINISHED), Mode.BUILD_SCRIPT)
    with mock.patch("subprocess.run", return_value=_completed()) as run:
        with exercise.compile() as compiled:
            output = compiled.run()
    assert output == ExerciseOutput("", "")
    assert run.call_count == 1
    assert run.call_args.args[0][:2] == ["cargo", "test"]
    assert Path(BUILD_SCRIPT_CARGO_TOML_PATH).exists()


def test_str_is_path():
    exercise = Exercise("x", "exercises/x.rs", Mode.COMPILE)
    assert str(exercise) == os.path.join("exercises", "x.rs")


def test_mode_names():
    assert Mode("buildscript") is Mode.BUILD_SCRIPT
    assert Mode("clippy") is Mode.CLIPPY


def test_load_exercises(tmp_path):
    info = _write(
        tmp_path,
        "info.toml",
        '[[exercises]]\nname = "intro1"\npath = "exercises/intro/intro1.rs"\n'
        'mode = "compile"\nhint = "No hints this time ;)"\n\n'
        '[[exercises]]\nname = "if1"\npath = "exercises/if/if1.rs"\n'
        'mode = "test"\nhint = "Hello!"\n',
    )
    exercises = load_exercises(info)
    assert [e.name for e in exercises] == ["intro1", "if1"]
    assert [e.mode for e in exercises] == [Mode.COMPILE, Mode.TEST]
    assert exercises[0].path == Path("exercises/intro/intro1.rs")
    assert exercises[1].hint == "Hello!"


def test_load_exercises_bad_mode(tmp_path):
    info = _write(tmp_path, "info.toml", '[[exercises]]\nname = "a"\npath = "a.rs"\nmode = "bogus"\nhint = ""\n')
    with pytest.raises(ValueError):
        load_exercises(info)


def test_load_exercises_missing_field(tmp_path):
    info = _write(tmp_path, "info.toml", '[[exercises]]\nname = "a"\npath = "a.rs"\nmode = "test"\n')
    with pytest.raises(ValueError):
        load_exercises(info)