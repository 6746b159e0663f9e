# rustlings

A command-line companion for working through a collection of small Rust
exercises. It reads the exercise list from `info.toml` in the current
directory. It then compiles and runs each exercise with `rustc`, or with
`cargo` for Clippy and build-script exercises, and reports which ones still
need work.

An exercise counts as pending while its source still has a line like this:

```
// I AM NOT DONE
```

Remove that line once you are happy with your solution, and the exercise
counts as done.

## Installation

```
pip install .
```

You need a Rust toolchain on your `PATH`: `rustc`, and also `cargo` for Clippy
and build-script exercises. Run every command from the directory that holds
`info.toml`. If that file is missing, or `rustc --version` fails, the command
prints a message and exits with status 1.

## The exercise list

`info.toml` holds an array of `[[exercises]]` tables. Each table has these
keys:

- `name` – used by `run`, `hint` and `reset`
- `path` – the exercise's `.rs` file
- `mode` – one of `compile`, `test`, `clippy` or `buildscript`
- `hint` – text shown by `rustlings hint`

What each mode does:

- `compile` – builds the file with `rustc` and runs the binary.
- `test` – builds the file as a test harness (`rustc --test`) and runs it with
  `--show-output`.
- `clippy` – writes `./exercises/clippy/Cargo.toml`, builds the file, then
  runs `cargo clean` and `cargo clippy` with `-D warnings -D clippy::float_cmp`.
- `buildscript` – writes `./exercises/tests/Cargo.toml` and runs `cargo test`.

## Usage

```
rustlings                  # welcome text and a short introduction
rustlings -v               # print the version
rustlings verify           # check every exercise in order; exit 1 at the first failure
rustlings watch            # re-check automatically whenever an exercise changes
rustlings run NAME         # compile and run (or test) a single exercise
rustlings run next         # run the first exercise that is not done yet
rustlings hint NAME        # print the hint for an exercise
rustlings reset NAME       # run `git stash -- <path>` on the exercise's file
rustlings list             # list exercises with their status
rustlings lsp              # write rust-project.json for rust-analyzer
rustlings cicvverify       # grade all exercises and write a JSON report
```

`next` works in place of a name for `run`, `hint` and `reset`. An unknown
name, or a missing name, exits with status 1.

To see the output of test exercises, put `--nocapture` before the
subcommand, for example `rustlings --nocapture run testSuccess`.

### Listing

`rustlings list` accepts these options:

- `-p`, `--paths` – show only paths
- `-n`, `--names` – show only names
- `-f`, `--filter PATTERNS` – comma-separated substrings that must appear in
  an exercise's name or path. The patterns are lower-cased before matching.
- `-u`, `--unsolved` – only exercises still pending
- `-s`, `--solved` – only exercises that are done

The list ends with a progress line such as
`Progress: You completed 3 / 10 exercises (30.0 %).`

### Watch mode

`rustlings watch` verifies the exercises first. It then watches
`./exercises` for new or changed `.rs` files. When a file changes, it checks
that exercise first and then every other exercise that is still pending.
While it runs you can type these commands:

- `hint` – the hint for the exercise that last failed
- `clear` – clear the screen
- `quit` – leave watch mode
- `!<cmd>` – run a command, e.g. `!rustc --explain E0381`
- `help` – list these commands

Add `--success-hints` (`rustlings watch --success-hints`) to also show an
exercise's hint once it compiles but is still marked as pending.

### rust-analyzer

`rustlings lsp` adds every `.rs` file under `./exercises` to
`./rust-project.json` as a crate. It takes the standard library sources from
`RUST_SRC_PATH` if that is set. Otherwise it uses the path printed by
`rustc --print sysroot`.

### Grading

`rustlings cicvverify` runs every exercise at the same time and prints
progress as each one finishes. It then writes a summary to
`.github/result/check_result.json`. The summary holds each exercise's result,
the number of successes and failures, and the total time in seconds. The
`.github/result` directory must already exist.

### Environment

Set the `NO_EMOJI` environment variable to get plain-text status markers.

## Using it from Python

The modules can also be used directly:

- `rustlings.exercise.load_exercises()` reads `info.toml` into `Exercise`
  objects.
- `Exercise.state()` and `Exercise.looks_done()` report whether the pending
  marker is still there. A pending state includes the lines around the marker.
- `rustlings.verify.verify()` raises `ExerciseFailed` at the first exercise
  that does not pass.
- `rustlings.run.run()` raises `RunFailed` when an exercise does not pass.

## What it does not do

The package does not include any exercises or an `info.toml`. You supply the
exercise collection, and the package only checks, runs and grades what that
file lists.