"""Adapter around the tmux CLI for workshop sessions, windows and panes."""
from __future__ import annotations

import subprocess
from dataclasses import dataclass
from dataclasses import field
from typing import Sequence

# tmux prints one of these when no server is listening on the socket.
_NO_SERVER_MARKERS = ("no server running", "error connecting to")

_PANE_FORMAT = "\t".join(
    [
        "#{pane_id}",
        "#{pane_index}",
        "#{pane_dead}",
        "#{@pane_role}",
        "#{@bench_id}",
        "#{@workshop_id}",
        "#{pane_title}",
    ]
)


@dataclass
class WindowInfo:
    window_id: str
    index: int
    name: str


@dataclass
class PaneInfo:
    pane_id: str
    index: int
    dead: bool = False
    role_tag: str = ""
    bench_id: str = ""
    workshop_id: str = ""
    title: str = ""


class TmuxCommandError(RuntimeError):
    """A tmux invocation exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"tmux {' '.join(self.args_list)} exited with {returncode}{detail}")

    @property
    def no_server(self) -> bool:
        lowered = self.stderr.lower()
        return any(marker in lowered for marker in _NO_SERVER_MARKERS)


class TmuxAdapter:
    """Wrapper around tmux commands used by the reconciler."""

    def __init__(self, tmux_bin: str = "tmux", socket: str | None = None) -> None:
        self.tmux_bin = tmux_bin
        self.socket = socket

    def _tmux_command(self, args: list[str]) -> list[str]:
        cmd = [self.tmux_bin]
        if self.socket and self.socket != "default":
            cmd += ["-L", self.socket]
        cmd.extend(args)
        return cmd

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(self._tmux_command(args), check=True, text=True, capture_output=True)
        except subprocess.CalledProcessError as exc:
            raise TmuxCommandError(args, exc.returncode, exc.stderr or "") from exc
        except OSError as exc:
            raise TmuxCommandError(args, -1, str(exc)) from exc

    @staticmethod
    def _session_target(session_name: str) -> str:
        return f"={session_name}"

    # Queries -----------------------------------------------------------
    def list_sessions(self) -> list[str]:
        try:
            proc = self._run(["list-sessions", "-F", "#{session_name}"])
        except TmuxCommandError as exc:
            if exc.no_server:
                return []
            raise
        return [line.strip() for line in proc.stdout.splitlines() if line.strip()]

    def session_exists(self, session_name: str) -> bool:
        return session_name in self.list_sessions()

    def list_windows(self, session_name: str) -> list[WindowInfo]:
        proc = self._run(
            [
                "list-windows",
                "-t",
                self._session_target(session_name),
                "-F",
                "#{window_id}\t#{window_index}\t#{window_name}",
            ]
        )
        windows: list[WindowInfo] = []
        for line in proc.stdout.splitlines():
            if not line:
                continue
            window_id, window_index, name = line.split("\t", 2)
            windows.append(WindowInfo(window_id=window_id, index=int(window_index), name=name))
        return windows

    def list_panes(self, target: str) -> list[PaneInfo]:
        proc = self._run(["list-panes", "-t", target, "-F", _PANE_FORMAT])
        panes: list[PaneInfo] = []
        for line in proc.stdout.splitlines():
            if not line:
                continue
            parts = line.split("\t", 6)
            if len(parts) < 7:
                parts += [""] * (7 - len(parts))
            pane_id, pane_index, dead_flag, role, bench_id, workshop_id, title = parts
            panes.append(
                PaneInfo(
                    pane_id=pane_id,
                    index=int(pane_index) if pane_index else 0,
                    dead=dead_flag == "1",
                    role_tag=role,
                    bench_id=bench_id,
                    workshop_id=workshop_id,
                    title=title,
                )
            )
        return panes

    # Session and window helpers ----------------------------------------
    def new_session(self, session_name: str, *, window_name: str, start_directory: str | None = None) -> str:
        """Create a detached session and return the id of its first window."""
        args = ["new-session", "-d", "-s", session_name, "-n", window_name, "-P", "-F", "#{window_id}"]
        if start_directory:
            args += ["-c", start_directory]
        return self._run(args).stdout.strip()

    def new_window(self, session_name: str, *, window_name: str, start_directory: str | None = None) -> str:
        args = [
            "new-window",
            "-d",
            "-t",
            f"{self._session_target(session_name)}:",
            "-n",
            window_name,
            "-P",
            "-F",
            "#{window_id}",
        ]
        if start_directory:
            args += ["-c", start_directory]
        return self._run(args).stdout.strip()

    def kill_window(self, target: str) -> None:
        self._run(["kill-window", "-t", target])

    def select_layout(self, target: str, layout: str) -> None:
        self._run(["select-layout", "-t", target, layout])

    def set_window_option(self, target: str, key: str, value: str) -> None:
        self._run(["set-option", "-w", "-t", target, key, value])

    def set_session_option(self, session_name: str, key: str, value: str) -> None:
        self._run(["set-option", "-t", self._session_target(session_name), key, value])

    # Pane helpers ------------------------------------------------------
    def split_window(self, target: str, *, horizontal: bool, start_directory: str | None = None) -> str:
        """Split ``target`` and return the new pane id (``-h`` puts it on the right)."""
        args = ["split-window", "-d", "-h" if horizontal else "-v", "-t", target, "-P", "-F", "#{pane_id}"]
        if start_directory:
            args += ["-c", start_directory]
        return self._run(args).stdout.strip()

    def respawn_pane(self, pane_id: str, command: Sequence[str], *, start_directory: str | None = None) -> None:
        args = ["respawn-pane", "-k", "-t", pane_id]
        if start_directory:
            args += ["-c", start_directory]
        args.extend(command)
        self._run(args)

    def break_pane(self, pane_id: str, *, window_name: str, after: str) -> str:
        """Move ``pane_id`` into a new window placed right after window ``after``."""
        proc = self._run(
            ["break-pane", "-d", "-a", "-s", pane_id, "-t", after, "-n", window_name, "-P", "-F", "#{window_id}"]
        )
        return proc.stdout.strip()

    def join_pane(self, pane_id: str, target: str) -> None:
        self._run(["join-pane", "-d", "-s", pane_id, "-t", target])

    def kill_pane(self, pane_id: str) -> None:
        self._run(["kill-pane", "-t", pane_id])

    def set_pane_option(self, pane_id: str, key: str, value: str) -> None:
        self._run(["set-option", "-p", "-t", pane_id, key, value])

    def set_pane_title(self, pane_id: str, title: str) -> None:
        self._run(["select-pane", "-t", pane_id, "-T", title])

    def send_keys(self, target: str, keys: str, *, literal: bool = False) -> None:
        args = ["send-keys", "-t", target]
        if literal:
            args.append("-l")
        args.append(keys)
        self._run(args)

    # Server-wide helpers -----------------------------------------------
    def bind_key(self, table: str, key: str, command: Sequence[str]) -> None:
        self._run(["bind-key", "-T", table, key, *command])


@dataclass
class FakePane:
    pane_id: str
    dead: bool = False
    title: str = ""
    command: tuple[str, ...] = ()
    start_directory: str | None = None
    options: dict[str, str] = field(default_factory=dict)


@dataclass
class FakeWindow:
    window_id: str
    name: str
    panes: list[FakePane] = field(default_factory=list)
    options: dict[str, str] = field(default_factory=dict)
    layout: str | None = None


class FakeTmuxAdapter(TmuxAdapter):
    """Testing double that keeps sessions, windows and panes in memory."""

    def __init__(self) -> None:
        super().__init__(tmux_bin="tmux")
        self._sessions: dict[str, list[FakeWindow]] = {}
        self.session_options: dict[str, dict[str, str]] = {}
        self.bindings: dict[tuple[str, str], tuple[str, ...]] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.failures: dict[str, Exception] = {}
        self._pane_counter = 0
        self._window_counter = 0

    # Test setup helpers ------------------------------------------------
    def add_session(self, session_name: str) -> None:
        self._sessions.setdefault(session_name, [])

    def add_window(
        self,
        session_name: str,
        name: str,
        panes: Sequence[tuple[str, bool]] = (),
    ) -> FakeWindow:
        """Add a window whose panes are given as ``(role_tag, dead)`` pairs."""
        window = FakeWindow(window_id=self._allocate_window_id(), name=name)
        for role, dead in panes:
            pane = FakePane(pane_id=self._allocate_pane_id(), dead=dead)
            if role:
                pane.options["@pane_role"] = role
            window.panes.append(pane)
        self._sessions.setdefault(session_name, []).append(window)
        return window

    def window(self, session_name: str, name: str) -> FakeWindow | None:
        for window in self._sessions.get(session_name, []):
            if window.name == name:
                return window
        return None

    def window_names(self, session_name: str) -> list[str]:
        return [window.name for window in self._sessions.get(session_name, [])]

    def fail_on(self, method: str, exc: Exception | None = None) -> None:
        self.failures[method] = exc or TmuxCommandError([method], 1, "injected failure")

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    # Queries -----------------------------------------------------------
    def list_sessions(self) -> list[str]:
        self._record("list_sessions")
        return sorted(self._sessions)

    def list_windows(self, session_name: str) -> list[WindowInfo]:
        self._record("list_windows", session_name)
        if session_name not in self._sessions:
            raise TmuxCommandError(["list-windows"], 1, f"can't find session: {session_name}")
        return [
            WindowInfo(window_id=window.window_id, index=idx, name=window.name)
            for idx, window in enumerate(self._sessions[session_name])
        ]

    def list_panes(self, target: str) -> list[PaneInfo]:
        self._record("list_panes", target)
        window = self._find_window(target)
        return [
            PaneInfo(
                pane_id=pane.pane_id,
                index=idx,
                dead=pane.dead,
                role_tag=pane.options.get("@pane_role", ""),
                bench_id=pane.options.get("@bench_id", ""),
                workshop_id=pane.options.get("@workshop_id", ""),
                title=pane.title,
            )
            for idx, pane in enumerate(window.panes)
        ]

    # Session and window helpers ----------------------------------------
    def new_session(self, session_name: str, *, window_name: str, start_directory: str | None = None) -> str:
        self._record("new_session", session_name, window_name)
        if session_name in self._sessions:
            raise TmuxCommandError(["new-session"], 1, f"duplicate session: {session_name}")
        window = FakeWindow(window_id=self._allocate_window_id(), name=window_name)
        window.panes.append(FakePane(pane_id=self._allocate_pane_id(), start_directory=start_directory))
        self._sessions[session_name] = [window]
        return window.window_id

    def new_window(self, session_name: str, *, window_name: str, start_directory: str | None = None) -> str:
        self._record("new_window", session_name, window_name)
        if session_name not in self._sessions:
            raise TmuxCommandError(["new-window"], 1, f"can't find session: {session_name}")
        window = FakeWindow(window_id=self._allocate_window_id(), name=window_name)
        window.panes.append(FakePane(pane_id=self._allocate_pane_id(), start_directory=start_directory))
        self._sessions[session_name].append(window)
        return window.window_id

    def kill_window(self, target: str) -> None:
        self._record("kill_window", target)
        window = self._find_window(target)
        for windows in self._sessions.values():
            if window in windows:
                windows.remove(window)

    def select_layout(self, target: str, layout: str) -> None:
        self._record("select_layout", target, layout)
        self._find_window(target).layout = layout

    def set_window_option(self, target: str, key: str, value: str) -> None:
        self._record("set_window_option", target, key, value)
        self._find_window(target).options[key] = value

    def set_session_option(self, session_name: str, key: str, value: str) -> None:
        self._record("set_session_option", session_name, key, value)
        if session_name not in self._sessions:
            raise TmuxCommandError(["set-option"], 1, f"can't find session: {session_name}")
        self.session_options.setdefault(session_name, {})[key] = value

    # Pane helpers ------------------------------------------------------
    def split_window(self, target: str, *, horizontal: bool, start_directory: str | None = None) -> str:
        self._record("split_window", target, horizontal)
        window, pane = self._find_pane(target)
        new_pane = FakePane(pane_id=self._allocate_pane_id(), start_directory=start_directory)
        window.panes.insert(window.panes.index(pane) + 1, new_pane)
        return new_pane.pane_id

    def respawn_pane(self, pane_id: str, command: Sequence[str], *, start_directory: str | None = None) -> None:
        self._record("respawn_pane", pane_id, tuple(command))
        _, pane = self._find_pane(pane_id)
        pane.command = tuple(command)
        pane.dead = False
        if start_directory:
            pane.start_directory = start_directory

    def break_pane(self, pane_id: str, *, window_name: str, after: str) -> str:
        self._record("break_pane", pane_id, window_name, after)
        source, pane = self._find_pane(pane_id)
        anchor = self._find_window(after)
        session_windows = self._windows_of(anchor)
        source.panes.remove(pane)
        new_window = FakeWindow(window_id=self._allocate_window_id(), name=window_name, panes=[pane])
        session_windows.insert(session_windows.index(anchor) + 1, new_window)
        self._drop_if_empty(source)
        return new_window.window_id

    def join_pane(self, pane_id: str, target: str) -> None:
        self._record("join_pane", pane_id, target)
        source, pane = self._find_pane(pane_id)
        destination = self._find_window(target)
        source.panes.remove(pane)
        destination.panes.append(pane)
        self._drop_if_empty(source)

    def kill_pane(self, pane_id: str) -> None:
        self._record("kill_pane", pane_id)
        window, pane = self._find_pane(pane_id)
        window.panes.remove(pane)
        self._drop_if_empty(window)

    def set_pane_option(self, pane_id: str, key: str, value: str) -> None:
        self._record("set_pane_option", pane_id, key, value)
        _, pane = self._find_pane(pane_id)
        pane.options[key] = value

    def set_pane_title(self, pane_id: str, title: str) -> None:
        self._record("set_pane_title", pane_id, title)
        _, pane = self._find_pane(pane_id)
        pane.title = title

    def send_keys(self, target: str, keys: str, *, literal: bool = False) -> None:
        self._record("send_keys", target, keys, literal)

    def bind_key(self, table: str, key: str, command: Sequence[str]) -> None:
        self._record("bind_key", table, key)
        self.bindings[(table, key)] = tuple(command)

    # Internals ---------------------------------------------------------
    def _record(self, method: str, *args: object) -> None:
        self.calls.append((method, args))
        failure = self.failures.get(method)
        if failure is not None:
            raise failure

    def _find_window(self, target: str) -> FakeWindow:
        for windows in self._sessions.values():
            for window in windows:
                if window.window_id == target:
                    return window
        raise TmuxCommandError(["find-window"], 1, f"can't find window: {target}")

    def _find_pane(self, pane_id: str) -> tuple[FakeWindow, FakePane]:
        for windows in self._sessions.values():
            for window in windows:
                for pane in window.panes:
                    if pane.pane_id == pane_id:
                        return window, pane
        raise TmuxCommandError(["find-pane"], 1, f"can't find pane: {pane_id}")

    def _windows_of(self, window: FakeWindow) -> list[FakeWindow]:
        for windows in self._sessions.values():
            if window in windows:
                return windows
        raise TmuxCommandError(["find-window"], 1, f"orphan window: {window.window_id}")

    def _drop_if_empty(self, window: FakeWindow) -> None:
        if window.panes:
            return
        for windows in self._sessions.values():
            if window in windows:
                windows.remove(window)

    def _allocate_pane_id(self) -> str:
        self._pane_counter += 1
        return f"%{self._pane_counter}"

    def _allocate_window_id(self) -> str:
        self._window_counter += 1
        return f"@{self._window_counter}"
