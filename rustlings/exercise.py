"""Exercises: loading, compiling, running and checking progress."""

from __future__ import annotations

import os
import re
import subprocess
import threading
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .ui import no_emoji

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"


def temp_file() -> str:
    """Return a binary name unique to this process and thread."""
    return f"./temp_{os.getpid()}_{threading.get_ident()}"


def clean() -> None:
    """Remove the compiled binary, if any."""
    try:
        os.remove(temp_file())
    except OSError:
        pass


class Mode(Enum):
    """How an exercise is checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class State:
    """Done when the context is empty; pending otherwise."""

    context: tuple[ContextLine, ...] = ()

    def done(self) -> bool:
        return not self.context


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a compiler or binary."""

    stdout: str
    stderr: str


class CompilationError(Exception):
    """The exercise did not compile."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__("compilation failed")
        self.output = output


class ExecutionError(Exception):
    """The compiled exercise exited unsuccessfully."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__("execution failed")
        self.output = output


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def _output(result: subprocess.CompletedProcess) -> ExerciseOutput:
    return ExerciseOutput(_decode(result.stdout), _decode(result.stderr))


def _lines(source: str) -> list[str]:
    lines = source.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _cargo_manifest(name: str) -> str:
    return (
        "[package]\n"
        f'name = "{name}"\n'
        'version = "0.0.1"\n'
        'edition = "2021"\n'
        "[[bin]]\n"
        f'name = "{name}"\n'
        f'path = "{name}.rs"'
    )


def _write_manifest(path: str, name: str) -> None:
    message = (
        "Failed to write Clippy Cargo.toml file."
        if no_emoji()
        else "Failed to write 📎 Clippy 📎 Cargo.toml file."
    )
    try:
        Path(path).write_text(_cargo_manifest(name), encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(message) from exc


def _rustc(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["rustc", *args, *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
        capture_output=True,
    )


class CompiledExercise:
    """A successfully compiled exercise; closing it removes the binary."""

    def __init__(self, exercise: Exercise) -> None:
        self.exercise = exercise
        self._closed = False

    def run(self) -> ExerciseOutput:
        return self.exercise._run()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, *args) -> None:
        self.close()


@dataclass
class Exercise:
    """One exercise as described in info.toml."""

    name: str
    path: Path
    mode: Mode
    hint: str = ""

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self.mode = Mode(self.mode)

    def __str__(self) -> str:
        return str(self.path)

    def _compile_command(self) -> subprocess.CompletedProcess:
        path = str(self.path)
        match self.mode:
            case Mode.COMPILE:
                return _rustc(path, "-o", temp_file())
            case Mode.TEST:
                return _rustc("--test", path, "-o", temp_file())
            case Mode.CLIPPY:
                _write_manifest(CLIPPY_CARGO_TOML_PATH, self.name)
                # Build a binary too so clippy exercises can be run.
                try:
                    _rustc(path, "-o", temp_file())
                except OSError as exc:
                    raise RuntimeError("Failed to compile!") from exc
                # A clean is needed for clippy to report every lint.
                try:
                    subprocess.run(
                        ["cargo", "clean", "--manifest-path",
                         CLIPPY_CARGO_TOML_PATH, *RUSTC_COLOR_ARGS],
                        capture_output=True,
                    )
                except OSError as exc:
                    raise RuntimeError("Failed to run 'cargo clean'") from exc
                return subprocess.run(
                    ["cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS,
                     "--", "-D", "warnings", "-D", "clippy::float_cmp"],
                    capture_output=True,
                )
            case Mode.BUILD_SCRIPT:
                _write_manifest(BUILD_SCRIPT_CARGO_TOML_PATH, self.name)
                return subprocess.run(
                    ["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH],
                    capture_output=True,
                )
        raise ValueError(f"unknown mode {self.mode!r}")

    def compile(self) -> CompiledExercise:
        """Compile the exercise, raising CompilationError on failure."""
        try:
            result = self._compile_command()
        except OSError as exc:
            raise RuntimeError("Failed to run 'compile' command.") from exc
        if result.returncode == 0:
            return CompiledExercise(self)
        clean()
        raise CompilationError(_output(result))

    def _run(self) -> ExerciseOutput:
        match self.mode:
            case Mode.TEST:
                args = ["--show-output"]
            case Mode.BUILD_SCRIPT:
                return ExerciseOutput("", "")
            case _:
                args = []
        try:
            result = subprocess.run([temp_file(), *args], capture_output=True)
        except OSError as exc:
            raise RuntimeError("Failed to run 'run' command") from exc
        output = _output(result)
        if result.returncode != 0:
            raise ExecutionError(output)
        return output

    def state(self) -> State:
        """Find the pending marker and the lines around it."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return State()

        lines = _lines(source)
        matched = next(
            (i for i, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)), None
        )
        if matched is None:
            raise RuntimeError("This should not happen at all")

        first = max(matched - CONTEXT, 0)
        last = matched + CONTEXT
        return State(
            tuple(
                ContextLine(line=line, number=i + 1, important=i == matched)
                for i, line in enumerate(lines[first:last + 1], start=first)
            )
        )

    def looks_done(self) -> bool:
        """True when the pending marker has been removed."""
        return self.state().done()


def load_exercises(path: str | os.PathLike = "info.toml") -> list[Exercise]:
    """Read the exercise list from a TOML file."""
    with open(path, "rb") as handle:
        data = tomllib.load(handle)
    try:
        return [
            Exercise(
                name=entry["name"],
                path=Path(entry["path"]),
                mode=Mode(entry["mode"]),
                hint=entry["hint"],
            )
            for entry in data["exercises"]
        ]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"invalid exercise list in {path}: {exc!r}") from exc