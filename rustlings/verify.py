"""Checking exercises in order and reporting how far along they are."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.text import Text

from .exercise import CompilationError, ExecutionError, Exercise, Mode
from .ui import no_emoji, success, warn

BAR_WIDTH = 60
SEPARATOR = "===================="


class ExerciseFailed(Exception):
    """An exercise did not compile, did not pass, or is still marked pending."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"{exercise} is not finished")
        self.exercise = exercise


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True, emoji=False, markup=False)


class _QuietStatus:
    """Stands in for a spinner when the output is not a terminal."""

    def update(self, message: str) -> None:
        pass


@contextmanager
def _spinner(message: str) -> Iterator:
    console = _console()
    if console.is_terminal:
        with console.status(message) as status:
            yield status
    else:
        yield _QuietStatus()


def _progress_line(position: int, total: int, percentage: float) -> Text:
    if total <= 0:
        filled = BAR_WIDTH
    else:
        filled = max(0, min(BAR_WIDTH, BAR_WIDTH * position // total))
    head = ">" if filled < BAR_WIDTH else ""
    rest = "-" * (BAR_WIDTH - filled - len(head))
    return Text.assemble(
        "Progress: [",
        ("#" * filled, "green"),
        (head + rest, "red"),
        f"] {position}/{total} ({percentage:.1f} %)",
    )


def _report_compile_failure(exercise: Exercise, error: CompilationError) -> None:
    warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
    print(error.output.stderr)


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    try:
        with _spinner(f"Compiling {exercise}..."):
            exercise.compile().close()
    except CompilationError as exc:
        _report_compile_failure(exercise, exc)
        return False
    return _prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    try:
        with _spinner(f"Compiling {exercise}...") as status:
            with exercise.compile() as compiled:
                status.update(f"Running {exercise}...")
                output = compiled.run()
    except CompilationError as exc:
        _report_compile_failure(exercise, exc)
        return False
    except ExecutionError as exc:
        warn(f"Ran {exercise} with errors")
        print(exc.output.stdout)
        print(exc.output.stderr)
        return False
    return _prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, interactive: bool, verbose: bool, success_hints: bool
) -> bool:
    try:
        with _spinner(f"Testing {exercise}..."):
            with exercise.compile() as compiled:
                output = compiled.run()
    except CompilationError as exc:
        _report_compile_failure(exercise, exc)
        return False
    except ExecutionError as exc:
        warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
        print(exc.output.stdout)
        return False
    if verbose:
        print(output.stdout)
    if interactive:
        return _prompt_for_completion(exercise, None, success_hints)
    return True


def _check(exercise: Exercise, verbose: bool, success_hints: bool) -> bool:
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            return _compile_and_test(exercise, True, verbose, success_hints)
        case Mode.COMPILE:
            return _compile_and_run_interactively(exercise, success_hints)
        case Mode.CLIPPY:
            return _compile_only(exercise, success_hints)
    raise ValueError(f"unknown mode {exercise.mode!r}")


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool = False,
    success_hints: bool = False,
) -> None:
    """Check each exercise in turn; raise ExerciseFailed at the first that fails."""
    num_done, total = progress
    step = 100.0 / total if total else 0.0
    percentage = num_done * step
    position = num_done
    console = _console()
    console.print(_progress_line(position, total, percentage))

    for exercise in exercises:
        if not _check(exercise, verbose, success_hints):
            raise ExerciseFailed(exercise)
        percentage += step
        position += 1
        console.print(_progress_line(position, total, percentage))


def test(exercise: Exercise, verbose: bool = False) -> None:
    """Compile and run an exercise's tests without prompting."""
    if not _compile_and_test(exercise, False, verbose, False):
        raise ExerciseFailed(exercise)


def _success_message(mode: Mode) -> str:
    match mode:
        case Mode.COMPILE:
            return "The code is compiling!"
        case Mode.TEST:
            return "The code is compiling, and the tests pass!"
        case Mode.CLIPPY:
            if no_emoji():
                return "The code is compiling, and Clippy is happy!"
            return "The code is compiling, and 📎 Clippy 📎 is happy!"
        case Mode.BUILD_SCRIPT:
            return "Build script works!"
    raise ValueError(f"unknown mode {mode!r}")


def _prompt_for_completion(
    exercise: Exercise, prompt_output: str | None, success_hints: bool
) -> bool:
    state = exercise.state()
    if state.done():
        return True

    match exercise.mode:
        case Mode.COMPILE:
            success(f"Successfully ran {exercise}!")
        case Mode.TEST:
            success(f"Successfully tested {exercise}!")
        case Mode.CLIPPY | Mode.BUILD_SCRIPT:
            success(f"Successfully compiled {exercise}!")

    console = _console()
    message = _success_message(exercise.mode)
    console.print()
    if no_emoji():
        console.print(f"~*~ {message} ~*~")
    else:
        console.print(f"🎉 🎉  {message} 🎉 🎉")
    console.print()

    separator = Text(SEPARATOR, style="bold")
    if prompt_output is not None:
        console.print("Output:")
        console.print(separator)
        print(prompt_output)
        console.print(separator)
        console.print()
    if success_hints:
        console.print("Hints:")
        console.print(separator)
        console.print(exercise.hint)
        console.print(separator)
        console.print()

    console.print("You can keep working on this exercise,")
    console.print(
        Text.assemble(
            "or jump into the next one by removing the ",
            ("`I AM NOT DONE`", "bold"),
            " comment:",
        )
    )
    console.print()
    for context_line in state.context:
        console.print(
            Text.assemble(
                (f"{context_line.number:>2}", "bold blue"),
                " ",
                ("|", "blue"),
                "  ",
                (context_line.line, "bold" if context_line.important else ""),
            )
        )
    return False