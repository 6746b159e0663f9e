"""Running a single exercise and resetting it."""

from __future__ import annotations

import subprocess

from .exercise import CompilationError, ExecutionError, Exercise, Mode
from .ui import success, warn
from .verify import ExerciseFailed, _spinner, test


class RunFailed(Exception):
    """Running or resetting an exercise did not succeed."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"{exercise} failed")
        self.exercise = exercise


def run(exercise: Exercise, verbose: bool = False) -> None:
    """Compile and run an exercise, or run its tests, raising RunFailed on failure."""
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            try:
                test(exercise, verbose)
            except ExerciseFailed as exc:
                raise RunFailed(exercise) from exc
        case Mode.COMPILE | Mode.CLIPPY:
            _compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Stash local changes to the exercise file with git."""
    try:
        return subprocess.Popen(["git", "stash", "--", str(exercise.path)])
    except OSError as exc:
        raise RunFailed(exercise) from exc


def _compile_and_run(exercise: Exercise) -> None:
    try:
        with _spinner(f"Compiling {exercise}...") as status:
            with exercise.compile() as compiled:
                status.update(f"Running {exercise}...")
                output = compiled.run()
    except CompilationError as exc:
        warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(exc.output.stderr)
        raise RunFailed(exercise) from exc
    except ExecutionError as exc:
        print(exc.output.stdout)
        print(exc.output.stderr)
        warn(f"Ran {exercise} with errors")
        raise RunFailed(exercise) from exc

    print(output.stdout)
    success(f"Successfully ran {exercise}")