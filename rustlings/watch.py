"""Watch mode: re-check exercises whenever their files change."""

from __future__ import annotations

import os
import queue
import subprocess
import sys
import threading
from collections.abc import Iterable, Sequence
from enum import Enum, auto
from pathlib import Path
from typing import TextIO

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exercise import Exercise
from .verify import ExerciseFailed, verify

EXERCISES_DIR = "./exercises"
POLL_SECONDS = 1.0

HELP_LINES = (
    "Commands available to you in watch mode:",
    "  hint   - prints the current exercise's hint",
    "  clear  - clears the screen",
    "  quit   - quits watch mode",
    "  !<cmd> - executes a command, like `!rustc --explain E0381`",
    "  help   - displays this help message",
    "",
    "Watch mode automatically re-evaluates the current exercise",
    "when you edit a file's contents.",
)


class WatchStatus(Enum):
    """How watch mode ended."""

    FINISHED = auto()
    UNFINISHED = auto()


class WatchShell:
    """Reads commands typed while watch mode is running."""

    def __init__(self, hint: str | None = None, stream: TextIO | None = None) -> None:
        self.hint = hint
        self.should_quit = threading.Event()
        self._stream = stream

    def handle(self, line: str) -> None:
        """Carry out one command line."""
        command = line.strip()
        if command == "hint":
            hint = self.hint
            if hint is not None:
                print(hint)
        elif command == "clear":
            print("\x1b[2J\x1b[1;1H")
        elif command == "quit":
            self.should_quit.set()
            print("Bye!")
        elif command == "help":
            for help_line in HELP_LINES:
                print(help_line)
        elif command.startswith("!"):
            cmd = command[1:]
            parts = cmd.split()
            if not parts:
                print("no command provided")
                return
            try:
                subprocess.run(parts)
            except OSError as exc:
                print(f"failed to execute command `{cmd}`: {exc}")
        else:
            print(f"unknown command: {command}")

    def _read_loop(self, stream: TextIO) -> None:
        while True:
            try:
                line = stream.readline()
            except (OSError, ValueError) as exc:
                print(f"error reading command: {exc}")
                return
            if not line:
                return
            self.handle(line)

    def start(self) -> threading.Thread:
        """Read commands on a background thread until input ends."""
        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        stream = self._stream if self._stream is not None else sys.stdin
        thread = threading.Thread(target=self._read_loop, args=(stream,), daemon=True)
        thread.start()
        return thread


def _ends_with(full: Path, suffix: Path) -> bool:
    parts = suffix.parts
    return bool(parts) and full.parts[-len(parts):] == parts


def pending_after_change(
    exercises: Sequence[Exercise], changed_path: str | os.PathLike
) -> list[Exercise]:
    """The changed exercise first, then every other exercise still pending."""
    filepath = Path(changed_path).resolve()
    changed = next((e for e in exercises if _ends_with(filepath, e.path)), None)
    rest = [
        e for e in exercises if not _ends_with(filepath, e.path) and not e.looks_done()
    ]
    return ([changed] if changed is not None else []) + rest


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, events: queue.Queue) -> None:
        super().__init__()
        self._events = events

    def _push(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._events.put(os.fsdecode(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        self._push(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._push(event)


def _clear_screen() -> None:
    print("\x1bc")


def _drain(first: str, events: queue.Queue) -> Iterable[str]:
    seen = [first]
    while True:
        try:
            path = events.get_nowait()
        except queue.Empty:
            break
        if path not in seen:
            seen.append(path)
    return seen


def watch(
    exercises: Sequence[Exercise], verbose: bool = False, success_hints: bool = False
) -> WatchStatus:
    """Verify exercises, then re-verify whenever an exercise file changes."""
    events: queue.Queue = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeHandler(events), EXERCISES_DIR, recursive=True)
    observer.start()
    try:
        _clear_screen()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
            return WatchStatus.FINISHED
        except ExerciseFailed as exc:
            shell = WatchShell(exc.exercise.hint)

        shell.start()
        while True:
            try:
                first = events.get(timeout=POLL_SECONDS)
            except queue.Empty:
                pass
            else:
                for changed in _drain(first, events):
                    path = Path(changed)
                    if path.suffix != ".rs" or not path.exists():
                        continue
                    pending = pending_after_change(exercises, path)
                    num_done = sum(1 for e in exercises if e.looks_done())
                    _clear_screen()
                    try:
                        verify(pending, (num_done, len(exercises)), verbose, success_hints)
                        return WatchStatus.FINISHED
                    except ExerciseFailed as exc:
                        shell.hint = exc.exercise.hint
            if shell.should_quit.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()