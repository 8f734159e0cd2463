"""Node supervisor for one channel working directory.

States:
    NO_SESSION -> STARTING -> RUNNING -> STOPPING -> NO_SESSION

The session file (``running_config.json``) is the only record of a running
node. It is trusted only after a liveness check of the recorded PID; a file
whose process is gone is removed with a warning pointing at the node log.

Two supervisors working on the same channel at the same time race on the
session file. No locking is done.
"""

import logging
import os
import subprocess
import warnings
from enum import Enum
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from ..audit import AuditLogger
from ..channel import Channel
from ..errors import (
    ChannelNotPreparedError,
    ControlChannelUnavailableError,
    ControlRequestError,
    NodeAlreadyRunningError,
    NoRunningNodeError,
    SessionFileError,
    SessionPersistError,
    SessionRemoveError,
    SpawnError,
)
from ..models.session import SessionDescriptor
from .companion import control_request, ensure_compatible
from .liveness import LivenessProbe, PsutilLiveness

_LOGGER = logging.getLogger(__name__)

REST_LISTEN_HOST = "127.0.0.1"
SHUTDOWN_TIMEOUT = 10.0


class SessionState(Enum):
    NO_SESSION = "no_session"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class StaleSessionWarning(UserWarning):
    """A session file outlived its node."""


class Supervisor:
    """Starts, inspects and stops the node of a channel."""

    def __init__(
        self,
        channel: Channel,
        liveness: LivenessProbe | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self.channel = channel
        self.liveness = liveness if liveness is not None else PsutilLiveness()
        self.audit = audit
        self.state = SessionState.NO_SESSION
        self.session: SessionDescriptor | None = None
        self.process: subprocess.Popen | None = None

    @classmethod
    def load(
        cls,
        channel: Channel,
        liveness: LivenessProbe | None = None,
        audit: AuditLogger | None = None,
    ) -> "Supervisor":
        """Create a supervisor bound to the channel's current session, if any."""
        supervisor = cls(channel, liveness=liveness, audit=audit)
        supervisor.acquire()
        return supervisor

    @property
    def session_file(self) -> Path:
        return self.channel.session_file

    def acquire(self) -> SessionState:
        """Read the session file and reconcile it with the process table.

        Raises:
            SessionFileError: The file exists but cannot be read or parsed.
            LivenessCheckError: The liveness of the recorded PID is unknown.
        """
        self.session = None
        self.state = SessionState.NO_SESSION

        path = self.session_file
        if not path.exists():
            return self.state

        try:
            session = SessionDescriptor.model_validate_json(path.read_text())
        except (OSError, ValidationError) as exc:
            raise SessionFileError(path) from exc

        if self.liveness.is_alive(session.pid):
            self.session = session
            self.state = SessionState.RUNNING
            return self.state

        warnings.warn(
            f"removing previous runner file {path}\n"
            "previous node was not shutdown properly\n"
            f"check {self.channel.log_file} for more information",
            StaleSessionWarning,
            stacklevel=2,
        )
        self._remove_session_file()
        if self.audit:
            self.audit.log("STALE_SESSION", channel=self.channel.name, pid=session.pid)
        return self.state

    def verify_binaries(self, node_binary: Path, companion_binary: Path) -> None:
        """Check both binaries against the channel's version requirement.

        Raises:
            CompatibilityError: A binary reports a version outside the requirement.
        """
        requirement = self.channel.requirement
        ensure_compatible(node_binary, requirement)
        ensure_compatible(companion_binary, requirement)

    def launch_command(
        self,
        node_binary: Path,
        rest_port: int | None = None,
        extra_params: Sequence[str] = (),
        default_config: bool = True,
    ) -> list[str]:
        """Build the node command line.

        With ``default_config`` the channel's storage, genesis hash, trusted
        peers and secret file (only when present) are passed. ``extra_params``
        come last so they can override any of those.

        Raises:
            ChannelNotPreparedError: The genesis hash file is missing.
        """
        command = [str(node_binary)]
        if rest_port is not None:
            command += ["--rest-listen", f"{REST_LISTEN_HOST}:{rest_port}"]

        if default_config:
            genesis_file = self.channel.genesis_hash_file
            try:
                genesis_hash = genesis_file.read_text().strip()
            except OSError as exc:
                raise ChannelNotPreparedError(genesis_file) from exc

            command += ["--storage", str(self.channel.storage_dir)]
            command += ["--genesis-block-hash", genesis_hash]
            for peer in self.channel.entry.trusted_peers:
                command += ["--trusted-peer", peer.as_argument()]
            if self.channel.secret_file.is_file():
                command += ["--secret", str(self.channel.secret_file)]

        command.extend(extra_params)
        return command

    def spawn(
        self,
        node_binary: Path,
        companion_binary: Path,
        rest_port: int | None = None,
        extra_params: Sequence[str] = (),
        default_config: bool = True,
    ) -> SessionDescriptor:
        """Start the node in the background and record its session.

        The node's stdin and stdout are discarded and stderr goes to the
        channel log file, which is truncated first. The child handle is kept
        on :attr:`process` and reaped by :meth:`shutdown`.

        Raises:
            NodeAlreadyRunningError: A live node is already recorded.
            SpawnError: The process could not be started.
            SessionPersistError: The node started but is not tracked.
        """
        command = self._prepare_start(
            node_binary, companion_binary, rest_port, extra_params, default_config
        )
        try:
            with open(self.channel.log_file, "wb") as log:
                process = subprocess.Popen(
                    command,
                    cwd=self.channel.directory,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=log,
                    start_new_session=os.name == "posix",
                )
        except OSError as exc:
            self.state = SessionState.NO_SESSION
            raise SpawnError(node_binary) from exc

        self.process = process
        session = self._record_session(process.pid, rest_port, node_binary, companion_binary)
        _LOGGER.info("Node started for channel %s, PID %d", self.channel.name, session.pid)
        if self.audit:
            self.audit.log(
                "SPAWN", channel=self.channel.name, pid=session.pid, port=rest_port
            )
        return session

    def run(
        self,
        node_binary: Path,
        companion_binary: Path,
        rest_port: int | None = None,
        extra_params: Sequence[str] = (),
        default_config: bool = True,
    ) -> int:
        """Run the node in the foreground until it exits.

        A clean exit removes the session file. After a failure the file is
        left behind and reconciled by the next :meth:`acquire`.

        Returns:
            The node's exit status
        """
        command = self._prepare_start(
            node_binary, companion_binary, rest_port, extra_params, default_config
        )
        try:
            process = subprocess.Popen(command, cwd=self.channel.directory)
        except OSError as exc:
            self.state = SessionState.NO_SESSION
            raise SpawnError(node_binary) from exc

        session = self._record_session(process.pid, rest_port, node_binary, companion_binary)
        if self.audit:
            self.audit.log("RUN", channel=self.channel.name, pid=session.pid, port=rest_port)

        returncode = process.wait()
        _LOGGER.info("Node of channel %s exited with status %d", self.channel.name, returncode)
        if returncode == 0:
            self._remove_session_file()
        self.session = None
        self.state = SessionState.NO_SESSION
        return returncode

    def status(self) -> str:
        """Node statistics as reported by the companion CLI."""
        return self._request("node", "stats")

    def info(self) -> str:
        """Node settings as reported by the companion CLI."""
        return self._request("settings")

    def shutdown(self) -> None:
        """Ask the node to shut down.

        The session file is removed only when the request succeeds; on
        failure the session stays RUNNING so the call can be retried.
        """
        session = self._require_control()
        self.state = SessionState.STOPPING
        try:
            self._request("shutdown")
        except ControlRequestError:
            self.state = SessionState.RUNNING
            raise

        self._remove_session_file()
        self.session = None
        self.state = SessionState.NO_SESSION
        _LOGGER.info("Node of channel %s shut down", self.channel.name)
        if self.process is not None:
            self._reap(self.process)
            self.process = None
        if self.audit:
            self.audit.log("SHUTDOWN", channel=self.channel.name, pid=session.pid)

    def _prepare_start(
        self,
        node_binary: Path,
        companion_binary: Path,
        rest_port: int | None,
        extra_params: Sequence[str],
        default_config: bool,
    ) -> list[str]:
        self.acquire()
        if self.session is not None:
            raise NodeAlreadyRunningError(self.session.pid)

        self.verify_binaries(node_binary, companion_binary)
        command = self.launch_command(node_binary, rest_port, extra_params, default_config)
        _LOGGER.debug("Launch command: %s", command)
        self.state = SessionState.STARTING
        return command

    def _record_session(
        self, pid: int, rest_port: int | None, node_binary: Path, companion_binary: Path
    ) -> SessionDescriptor:
        session = SessionDescriptor(
            pid=pid,
            control_port=rest_port,
            companion_binary_path=companion_binary,
            node_binary_path=node_binary,
        )
        try:
            self.session_file.write_text(session.model_dump_json(indent=2))
        except OSError as exc:
            raise SessionPersistError(self.session_file, pid) from exc
        self.session = session
        self.state = SessionState.RUNNING
        return session

    def _require_control(self) -> SessionDescriptor:
        if self.session is None:
            raise NoRunningNodeError()
        if self.session.control_port is None:
            raise ControlChannelUnavailableError()
        return self.session

    def _request(self, *request: str) -> str:
        session = self._require_control()
        return control_request(session.companion_binary_path, session.control_port, *request)

    def _reap(self, process: subprocess.Popen) -> None:
        try:
            process.wait(timeout=SHUTDOWN_TIMEOUT)
        except subprocess.TimeoutExpired:
            _LOGGER.warning(
                "Node PID %d still running %ss after shutdown", process.pid, SHUTDOWN_TIMEOUT
            )

    def _remove_session_file(self) -> None:
        try:
            self.session_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise SessionRemoveError(self.session_file) from exc
