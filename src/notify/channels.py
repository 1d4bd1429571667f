"""Notification channels — desktop presentation on macOS and Linux."""

from __future__ import annotations

import abc
import asyncio
import contextlib
import shutil

import structlog

from src.core.types import Severity
from src.notify.types import AlertMessage

logger = structlog.get_logger(__name__)

# Presentation ladder: each severity adds a more intrusive form.
_PRESENTATION: dict[Severity, tuple[str, ...]] = {
    Severity.INFO: ("banner",),
    Severity.WARNING: ("banner", "dialog"),
    Severity.CRITICAL: ("banner", "dialog", "speech"),
}


class NotificationChannel(abc.ABC):
    """Base class for alert presentation channels."""

    @abc.abstractmethod
    async def send(self, msg: AlertMessage) -> bool:
        """Present an alert message. Returns True on success."""

    async def close(self) -> None:
        """Release resources."""


class LogChannel(NotificationChannel):
    """Writes alerts to the operational log; for headless hosts."""

    async def send(self, msg: AlertMessage) -> bool:
        log = {
            Severity.INFO: logger.info,
            Severity.WARNING: logger.warning,
            Severity.CRITICAL: logger.critical,
        }[msg.severity]
        log("alert", title=msg.title, body=msg.body, event_id=msg.event_id, fields=msg.fields)
        return True


class CommandChannel(NotificationChannel):
    """Presents alerts by running desktop commands.

    Subclasses build the argv for each presentation form; returning None
    means the form is not available on this host and is skipped.
    """

    def __init__(self, command_timeout_secs: float = 15.0) -> None:
        self._command_timeout_secs = command_timeout_secs

    @abc.abstractmethod
    def banner(self, msg: AlertMessage) -> list[str] | None:
        """Non-blocking notification banner."""

    @abc.abstractmethod
    def dialog(self, msg: AlertMessage) -> list[str] | None:
        """Modal dialog that dismisses itself after a while."""

    @abc.abstractmethod
    def speech(self, msg: AlertMessage) -> list[str] | None:
        """Spoken alert."""

    def commands_for(self, msg: AlertMessage) -> list[list[str]]:
        commands: list[list[str]] = []
        for form in _PRESENTATION[msg.severity]:
            args = getattr(self, form)(msg)
            if args is not None:
                commands.append(args)
        return commands

    async def send(self, msg: AlertMessage) -> bool:
        commands = self.commands_for(msg)
        if not commands:
            return False
        ok = True
        for args in commands:
            ok = await self._run(args) and ok
        return ok

    async def _run(self, args: list[str]) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError:
            logger.exception("notify_command_error", command=args[0])
            return False

        try:
            _, stderr = await asyncio.wait_for(
                proc.communicate(),
                timeout=self._command_timeout_secs,
            )
        except (TimeoutError, asyncio.CancelledError) as exc:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            if isinstance(exc, asyncio.CancelledError):
                raise
            logger.warning(
                "notify_command_timeout",
                command=args[0],
                timeout_secs=self._command_timeout_secs,
            )
            return False

        if not self.succeeded(args, proc.returncode):
            logger.warning(
                "notify_command_failed",
                command=args[0],
                returncode=proc.returncode,
                stderr=stderr.decode("utf-8", errors="replace")[:200],
            )
            return False
        return True

    def succeeded(self, args: list[str], returncode: int | None) -> bool:
        return returncode == 0


def _applescript_str(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class MacOSChannel(CommandChannel):
    """Notification Center banner, System Events dialog and ``say``."""

    def __init__(
        self,
        command_timeout_secs: float = 15.0,
        dialog_timeout_secs: int = 10,
        speech_text: str = "Critical storage alert",
    ) -> None:
        super().__init__(command_timeout_secs)
        self._dialog_timeout_secs = dialog_timeout_secs
        self._speech_text = speech_text

    def banner(self, msg: AlertMessage) -> list[str] | None:
        script = (
            f"display notification {_applescript_str(msg.body)} "
            f"with title {_applescript_str(msg.title)} "
            f"subtitle {_applescript_str(msg.severity.value)}"
        )
        return ["osascript", "-e", script]

    def dialog(self, msg: AlertMessage) -> list[str] | None:
        icon = "stop" if msg.severity == Severity.CRITICAL else "caution"
        script = (
            'tell application "System Events" to display dialog '
            f"{_applescript_str(msg.body)} with title {_applescript_str(msg.title)} "
            f'buttons {{"OK"}} default button 1 with icon {icon} '
            f"giving up after {self._dialog_timeout_secs}"
        )
        return ["osascript", "-e", script]

    def speech(self, msg: AlertMessage) -> list[str] | None:
        return ["say", self._speech_text]


class LinuxChannel(CommandChannel):
    """``notify-send`` banners, ``zenity`` dialogs and ``spd-say`` speech."""

    _URGENCY: dict[Severity, str] = {
        Severity.INFO: "low",
        Severity.WARNING: "normal",
        Severity.CRITICAL: "critical",
    }

    def __init__(
        self,
        command_timeout_secs: float = 15.0,
        dialog_timeout_secs: int = 10,
        speech_text: str = "Critical storage alert",
    ) -> None:
        super().__init__(command_timeout_secs)
        self._dialog_timeout_secs = dialog_timeout_secs
        self._speech_text = speech_text

    def banner(self, msg: AlertMessage) -> list[str] | None:
        if shutil.which("notify-send") is None:
            return None
        return [
            "notify-send",
            f"--urgency={self._URGENCY[msg.severity]}",
            "--app-name=storage-alerts",
            msg.title,
            msg.body,
        ]

    def dialog(self, msg: AlertMessage) -> list[str] | None:
        if shutil.which("zenity") is None:
            return None
        kind = "--error" if msg.severity == Severity.CRITICAL else "--warning"
        return [
            "zenity",
            kind,
            f"--title={msg.title}",
            f"--text={msg.body}",
            f"--timeout={self._dialog_timeout_secs}",
            "--no-markup",
        ]

    def speech(self, msg: AlertMessage) -> list[str] | None:
        if shutil.which("spd-say") is None:
            return None
        return ["spd-say", "--wait", self._speech_text]

    def succeeded(self, args: list[str], returncode: int | None) -> bool:
        # zenity exits 5 when its --timeout dismisses the dialog.
        if args[0] == "zenity":
            return returncode in (0, 5)
        return returncode == 0
