"""
Command Pipeline
Runs a sequence of external commands on a background thread and streams
their combined output, line by line, through a queue owned by the project.

Usage:
    pipeline = CommandPipeline()
    pipeline.run([CommandSpec("cargo", ("build",), cwd=project_dir)], request_repaint)

    # later, from the polling side (never blocks)
    for item in pipeline.drain():
        if isinstance(item, RunComplete):
            ...
        else:
            print(item)
"""

import logging
import queue
import shlex
import subprocess
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

RepaintCallback = Callable[[], None]


@dataclass(frozen=True)
class CommandSpec:
    """A program, its arguments and the directory it runs in"""

    program: str
    args: Tuple[str, ...] = ()
    cwd: Optional[Path] = None

    def argv(self) -> List[str]:
        return [self.program, *self.args]

    def __str__(self) -> str:
        return " ".join(shlex.quote(part) for part in self.argv())


@dataclass(frozen=True)
class RunComplete:
    """
    Terminal message of a run, always the last item on the channel.

    exit_codes holds one entry per command that ran to completion;
    error is set when a command could not be launched.
    """

    exit_codes: Tuple[int, ...] = field(default_factory=tuple)
    error: Optional[str] = None

    @property
    def commands_run(self) -> int:
        return len(self.exit_codes)

    @property
    def exit_code(self) -> Optional[int]:
        """First non-zero exit status, None if a launch failed, else 0"""
        if self.error is not None:
            return None
        return next((code for code in self.exit_codes if code != 0), 0)

    @property
    def success(self) -> bool:
        return self.exit_code == 0


ChannelItem = Union[str, RunComplete]


class PipelineState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class CommandPipeline:
    """
    Sequential background runner, one worker thread per run.

    A new run is refused while one is in flight. Starting a run replaces
    the output queue, so lines of a finished run that were never drained
    are dropped.
    """

    def __init__(self, stop_on_failure: bool = False):
        self.stop_on_failure = stop_on_failure
        self._lock = threading.Lock()
        self._state = PipelineState.IDLE
        self._channel: Optional[queue.Queue] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == PipelineState.RUNNING

    def run(self, commands: Sequence[CommandSpec], request_repaint: Optional[RepaintCallback] = None) -> bool:
        """
        Start executing ``commands`` in order on a new worker thread.

        Returns:
            True if the run started, False if it was refused
        """
        commands = list(commands)
        if not commands:
            logger.warning("refusing to start an empty command run")
            return False

        with self._lock:
            if self._state == PipelineState.RUNNING:
                logger.warning("a command run is already in progress, refusing to start another")
                return False

            channel: queue.Queue = queue.Queue()
            self._channel = channel
            self._state = PipelineState.RUNNING
            self._worker = threading.Thread(
                target=self._run_commands,
                args=(commands, channel, request_repaint),
                daemon=True,
                name="CommandPipeline",
            )

        logger.info(f"starting command run: {'; '.join(str(c) for c in commands)}")
        self._worker.start()
        return True

    def _run_commands(self, commands: List[CommandSpec], channel: queue.Queue, request_repaint: Optional[RepaintCallback]):
        exit_codes: List[int] = []
        error = None

        try:
            for cmd in commands:
                logger.debug(f"running: {cmd}")
                try:
                    proc = subprocess.Popen(
                        cmd.argv(),
                        cwd=str(cmd.cwd) if cmd.cwd else None,
                        stdout=subprocess.PIPE,
                        stderr=subprocess.STDOUT,
                        stdin=subprocess.DEVNULL,
                        text=True,
                        errors="replace",
                        bufsize=1,
                    )
                except (OSError, ValueError) as e:
                    # ValueError: arguments the OS can't represent, e.g. an embedded NUL
                    error = f"failed to launch `{cmd}`: {e}"
                    logger.error(error)
                    break

                with proc.stdout:
                    for line in proc.stdout:
                        channel.put_nowait(line.rstrip("\r\n"))
                        self._notify(request_repaint)

                code = proc.wait()
                exit_codes.append(code)
                logger.debug(f"`{cmd}` exited with status {code}")

                if code != 0 and self.stop_on_failure:
                    logger.warning(f"`{cmd}` failed with status {code}, skipping remaining commands")
                    break
        except Exception as e:
            error = f"command run aborted: {e}"
            logger.exception(error)
        finally:
            # queue the marker and go idle atomically: a consumer that sees
            # RunComplete can always start the next run
            with self._lock:
                channel.put_nowait(RunComplete(exit_codes=tuple(exit_codes), error=error))
                self._state = PipelineState.IDLE
            self._notify(request_repaint)
            logger.info("leaving command thread")

    def _notify(self, request_repaint: Optional[RepaintCallback]):
        if request_repaint is None:
            return
        try:
            request_repaint()
        except Exception as e:
            logger.debug(f"repaint request failed: {e}")

    def drain(self) -> List[ChannelItem]:
        """Take everything currently available on the channel without blocking"""
        channel = self._channel
        items: List[ChannelItem] = []
        if channel is None:
            return items
        while True:
            try:
                items.append(channel.get_nowait())
            except queue.Empty:
                return items

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the current worker finishes.

        Returns:
            True if no worker is left running
        """
        worker = self._worker
        if worker is not None:
            worker.join(timeout)
            return not worker.is_alive()
        return True
