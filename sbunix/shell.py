"""A small interactive shell with cd, pwd and export built in."""

import os
import subprocess
import sys
from collections.abc import Mapping

from sbunix.fmt import scan

MAX_LINE = 2048
PROMPT_SUFFIX = "@SBU-SH"

_ENV_NAMES = ("USER", "HOME", "PATH")
_EXPORTABLE = {"PATH": "path", "HOME": "home", "PS1": "ps1"}
_BANNER = (
    "--------------------------------------------------------------",
    "--------------Welcome! Thanks for using SBUSH!----------------",
    "--------------------------------------------------------------",
    "",
)


def trim(text):
    """Remove leading and trailing spaces (only spaces)."""
    return text.strip(" ")


def split_command(line, separator):
    """Split line at every occurrence of separator, keeping empty fields."""
    if not separator:
        raise ValueError("separator must not be empty")
    return line.split(separator)


def _lookup(entries, name):
    for entry in entries:
        if not entry:
            break
        if entry.startswith(name):
            return entry[len(name) + 1 :]
    return ""


def read_environment(envp):
    """Pick USER, HOME and PATH out of NAME=value entries and derive PS1.

    Entries are matched by prefix, the first match wins, and the scan stops at
    the first empty entry. A variable that is not found is the empty string.
    """
    entries = list(envp)
    values = {name: _lookup(entries, name) for name in _ENV_NAMES}
    values["PS1"] = values["USER"] + PROMPT_SUFFIX
    return values


def _entries(env):
    if env is None:
        env = os.environ
    if isinstance(env, Mapping):
        return [f"{key}={value}" for key, value in env.items()]
    return list(env)


def _close(stream):
    if hasattr(stream, "close"):
        stream.close()


class Shell:
    """The shell's state: its variables, working directory and output stream."""

    def __init__(self, env=None, stdout=None):
        self.envp = _entries(env)
        self.stdout = sys.stdout if stdout is None else stdout
        values = read_environment(self.envp)
        for name in _ENV_NAMES:
            if not values[name]:
                self._say(f"[ERROR]: get {name} envp failed")
        self.user = values["USER"]
        self.home = values["HOME"]
        self.path = values["PATH"]
        self.ps1 = values["PS1"]
        self.cwd = os.getcwd()
        self._child_env = dict(
            entry.partition("=")[::2] for entry in self.envp if entry
        )

    def _say(self, text):
        self.stdout.write(text + "\n")

    def prompt(self):
        """Write and return the prompt, showing HOME as ~."""
        if self.cwd.startswith(self.home):
            text = f"{self.ps1}:~{self.cwd[len(self.home):]}$ "
        else:
            text = f"{self.ps1}:{self.cwd}$ "
        self.stdout.write(text)
        self.stdout.flush()
        return text

    def pwd(self):
        """Write the working directory on a line of its own and return it."""
        self._say(self.cwd)
        return self.cwd

    def _change_to(self, target, shown):
        if not (os.path.isdir(target) and os.access(target, os.X_OK)):
            raise FileNotFoundError(
                f"[ERROR]: sbush: cd: {shown}: No such file or directory"
            )
        self.cwd = os.path.realpath(target)

    def cd(self, parameter):
        """Change the working directory; '..', '~' and absolute paths are understood."""
        if parameter == "..":
            cut = self.cwd.rfind("/")
            target = self.cwd[:cut] if cut > 0 else "/"
        elif parameter.startswith("~"):
            target = self.home + parameter[1:]
        elif parameter.startswith("/"):
            target = parameter
        else:
            target = self.cwd + "/" + parameter
        self._change_to(target, parameter)
        return self.cwd

    def export(self, words):
        """Set PATH, HOME or PS1 from the words after 'export', joined together."""
        parts = split_command("".join(words[1:]), "=")
        name = parts[0]
        if name not in _EXPORTABLE or len(parts) < 2:
            raise ValueError(f"[ERROR]: sbush: {name}: Invalid environment parameter")
        setattr(self, _EXPORTABLE[name], parts[1])
        return parts[1]

    def _resolve(self, command):
        if command.startswith("/"):
            candidates = [command]
        else:
            candidates = [
                directory + "/" + command
                for directory in split_command(self.path, ":")
            ]
        for candidate in candidates:
            full = os.path.join(self.cwd, candidate)
            if os.path.isfile(full) and os.access(full, os.X_OK):
                return full
        raise FileNotFoundError(command)

    def _output_target(self):
        try:
            descriptor = self.stdout.fileno()
        except (AttributeError, OSError, ValueError):
            return None
        self.stdout.flush()
        return descriptor

    def _run(self, path, argv):
        target = self._output_target()
        options = {"executable": path, "cwd": self.cwd, "env": self._child_env}
        if target is None:
            completed = subprocess.run(
                argv, stdout=subprocess.PIPE, text=True, errors="replace", **options
            )
            self.stdout.write(completed.stdout)
        else:
            completed = subprocess.run(argv, stdout=target, **options)
        return completed.returncode

    def run_external(self, argv):
        """Run argv[0] from an absolute path or the first PATH entry that has it."""
        return self._run(self._resolve(argv[0]), argv)

    def execute_file(self, argv):
        """Run a program named as ./name relative to the working directory."""
        name = argv[0]
        relative = name[2:]
        if "/" in relative:
            relative = name[1:]
        full = os.path.join(self.cwd, relative)
        if not (os.path.isfile(full) and os.access(full, os.X_OK)):
            raise FileNotFoundError(name)
        return self._run(full, argv)

    def run_script(self, path):
        """Run each line of a file as an external command; failures are silent."""
        full = os.path.join(self.cwd, path)
        try:
            handle = open(full, encoding="utf-8", errors="replace", newline="")
        except OSError:
            raise FileNotFoundError(
                f"[ERROR]: sbush: {path}:  No such file or directory"
            ) from None
        with handle:
            for line in handle:
                words = split_command(line.removesuffix("\n"), " ")
                try:
                    self.run_external(words)
                except OSError:
                    pass

    def _go_home(self):
        try:
            self._change_to(self.home, self.home)
        except FileNotFoundError:
            pass

    def run_command(self, words):
        """Run one command given as words: a built-in, ./file or external program."""
        words = list(words) or [""]
        name = trim(words[0])
        if name == "cd":
            if len(words) == 1:
                self._go_home()
                return
            try:
                self.cd(words[1])
            except FileNotFoundError as error:
                self._say(str(error))
        elif name == "pwd":
            self.pwd()
        elif name == "export":
            try:
                self.export(words)
            except ValueError as error:
                self._say(str(error))
        elif name.startswith("./"):
            try:
                self.execute_file([name, *words[1:]])
            except OSError:
                self._say(f"[ERROR]: sbush: {words[0]}: File cannot execute")
        else:
            try:
                self.run_external([name, *words[1:]])
            except OSError:
                self._say(f"[ERROR]: sbush: {words[0]}: Command not found")

    def run_pipeline(self, commands):
        """Run commands with each one's output feeding the next one's input."""
        target = self._output_target()
        last_index = len(commands) - 1
        processes = []
        final = None
        source = None
        for index, command in enumerate(commands):
            words = split_command(trim(command), " ")
            is_last = index == last_index
            try:
                path = self._resolve(words[0])
            except FileNotFoundError:
                _close(source)
                source = subprocess.DEVNULL
                continue
            if is_last:
                stdout = subprocess.PIPE if target is None else target
            else:
                stdout = subprocess.PIPE
            try:
                process = subprocess.Popen(
                    words,
                    executable=path,
                    stdin=source,
                    stdout=stdout,
                    cwd=self.cwd,
                    env=self._child_env,
                )
            except OSError:
                _close(source)
                source = subprocess.DEVNULL
                continue
            _close(source)
            processes.append(process)
            if is_last:
                final = process
                source = None
            else:
                source = process.stdout
        if final is not None and target is None:
            output = final.stdout.read()
            final.stdout.close()
            self.stdout.write(output.decode("utf-8", errors="replace"))
        for process in processes:
            process.wait()

    def run_line(self, line):
        """Run one input line, as a pipeline if it contains '|'."""
        text = trim(line)
        if "|" in text:
            self.run_pipeline(split_command(text, "|"))
        else:
            self.run_command(split_command(text, " "))

    def loop(self, stdin=None):
        """Prompt, read and run lines until the input ends."""
        stdin = sys.stdin if stdin is None else stdin
        while True:
            self.prompt()
            raw = stdin.readline()
            if not raw:
                break
            self.run_line(scan("%s", raw)[0])


def main(argv=None):
    """Run a script file if one is named, otherwise read commands interactively."""
    args = sys.argv[1:] if argv is None else list(argv)
    shell = Shell()
    if args:
        try:
            shell.run_script(args[0])
        except FileNotFoundError as error:
            print(str(error), file=shell.stdout)
        return 0
    for line in _BANNER:
        print(line, file=shell.stdout)
    shell.loop(sys.stdin)
    return 0


if __name__ == "__main__":
    sys.exit(main())