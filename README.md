# termcast

`termcast` records terminal sessions and plays them back. It reads recordings
in the asciicast format, versions 1 and 2, and writes version 2. Version 2 is
a line-oriented JSON format: a header line, then one `[time, code, data]`
event per line.

It runs on POSIX systems, because recording relies on pseudo-terminals.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Command line

Everything runs through the `termcast` command. These options work with every
subcommand:

- `--server-url URL`: server to use for `upload` and `auth`
- `-q, --quiet`: suppress the `:::` status messages

`termcast --version` prints the version. When a command fails, it prints
`Error: ...` to standard error and exits with status 1.

### Record a session

```
termcast rec demo.cast
```

This runs `/bin/sh -c <command>` in a new pseudo-terminal and records what it
prints. The command is `--command`, then the configured `cmd.rec.command`,
then `$SHELL`, then `/bin/sh`. The session ends when the command exits. The
recorded command sees `ASCIINEMA_REC=1` in its environment. Recording needs
the locale's character set to be ASCII or UTF-8.

Options:

- `-c, --command CMD`: record this command instead of the shell
- `-I, --input` (or `--stdin`): also record keyboard input
- `-a, --append`: append to an existing recording, shifting the new events so
  they follow the last recorded one
- `--overwrite`: replace an existing file (cannot be combined with `--append`)
- `-f, --format {asciicast,raw}`: output format; the default is `asciicast`
- `-t, --title TITLE`: title stored in the header
- `-i, --idle-time-limit SECS`: idle time limit stored in the header
- `--env VARS`: comma-separated environment variables to store in the header
  (default `TERM,SHELL`)
- `--headless`: don't use the controlling terminal; the size is then 80x24
  unless overridden
- `--tty-size COLSxROWS`: override the terminal size, e.g. `100x40`, `100x`
  or `x40`
- `--filename TEMPLATE`: file name template used when the output path is a
  directory

The target file must not already exist unless you pass `--append` or
`--overwrite`. An existing empty file is overwritten without asking.

When the output path is a directory, the file name comes from a template. The
default is `%Y-%m-%d-%H-%M-%S-{pid}.cast`. A template takes `strftime` codes
and the `{pid}`, `{user}` and `{hostname}` placeholders.

If `/dev/tty` cannot be opened, recording goes on in headless mode. Otherwise
the terminal's colour theme is queried and stored in the header when the
terminal answers.

While recording, `Ctrl+\` pauses and resumes. You can set a prefix key and an
"add marker" key in the configuration. Pauses and markers trigger a
notification when notifications are enabled.

### Replay a session

```
termcast play demo.cast
```

Options:

- `-s, --speed N`: playback speed multiplier (default 1, or `cmd.play.speed`)
- `-i, --idle-time-limit SECS`: cap pauses between events; falls back to the
  configured value, then to the limit in the recording's header
- `-l, --loop`: play in a loop
- `-m, --pause-on-markers`: pause automatically at each marker

Keys during playback: `Space` pauses and resumes, `.` steps one event while
paused, `]` skips to the next marker while paused, and `Ctrl+C` quits.
Playback reads keys from `/dev/tty` and writes to standard output.

### Concatenate recordings

```
termcast cat first.cast second.cast > joined.cast
```

The header comes from the first file. Each later file's events are shifted so
that they follow the end of the previous file. The result is written to
standard output as asciicast v2.

### Convert a recording

```
termcast convert demo.cast demo.raw --format raw
```

`raw` writes only the terminal output, preceded by a resize escape sequence.
`asciicast` (the default) rewrites the recording as asciicast v2 and keeps
its header metadata. The output file must not exist unless you pass
`--overwrite` or the file is empty.

### Upload and authenticate

```
termcast auth
termcast upload demo.cast
```

`auth` prints a URL that links this machine's install ID to an account on
the server. `upload` checks that the file is a readable recording, sends it
to the server and prints the server's message, or the recording's URL if
there is no message. A server that rejects the file as too large produces a
clear error.

If no server URL is configured, you are asked for one the first time it is
needed (press Enter to accept the offered default). Your answer is saved to
`defaults.toml` in the configuration directory. The install ID is a random
UUID, created on first use and stored in the file `install-id` in the same
directory.

## Configuration

The configuration directory is `$ASCIINEMA_CONFIG_HOME`, otherwise
`$XDG_CONFIG_HOME/asciinema`, otherwise `~/.config/asciinema`.

Settings are merged from these sources, each one overriding the ones before:

1. `/etc/asciinema/config.toml`
2. `defaults.toml` in the configuration directory
3. `config.toml` in the configuration directory
4. `ASCIINEMA_*` environment variables, where underscores separate sections
   (for example `ASCIINEMA_SERVER_URL`, `ASCIINEMA_CMD_REC_INPUT`).
   `ASCIINEMA_API_URL` is used when `ASCIINEMA_SERVER_URL` is not set.
5. `--server-url`

Recognised settings:

- `[server]`: `url`
- `[cmd.rec]`: `command`, `filename`, `input`, `env`, `idle_time_limit`,
  `prefix_key`, `pause_key`, `add_marker_key`
- `[cmd.play]`: `speed`, `idle_time_limit`, `pause_key`, `step_key`,
  `next_marker_key`
- `[notifications]`: `enabled` (default true), `command`

A key is written as a single character, as `^X`, or as `C-x` / `C+x`. An
empty value disables the binding.

With notifications enabled, messages go to the custom `command` (run through
`/bin/sh -c`, with the text in `$TEXT`) if one is set. Otherwise they go to
the first tool available among `tmux display-message` (inside tmux),
`notify-send` and `osascript`.

## Library use

The modules can also be used directly:

- `termcast.reader.open_path(path)` / `open_cast(stream)` return a
  `termcast.cast.Recording` (a `Header` plus an iterator of `Event`s; times
  are in microseconds). `get_duration(path)` gives the time of the last event.
- `termcast.cast.limit_idle_time(events, limit)` and
  `accelerate(events, speed)` transform event streams.
- `termcast.v2.Encoder` writes v2 header and event lines.
- `termcast.encoders` has `AsciicastEncoder`, `RawEncoder` and
  `encode_to_file(encoder, recording, file)`.
- `termcast.ptyexec.exec_command(command, extra_env, tty, handler)` runs a
  command in a pseudo-terminal and reports its I/O to a `Handler`.

## What it does not do

- There is no live streaming: no `stream` command and no built-in web server.
  `termcast.api.create_user_stream` can ask a server for a stream endpoint,
  but nothing sends a stream to it.
- There is no plain-text (`txt`) output format; `rec` and `convert` write
  only `asciicast` or `raw`.
- `play` and `convert` read local files only, not URLs.