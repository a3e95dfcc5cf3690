"""Async runner for the external build, doc and publish commands."""

import asyncio
import logging
import shlex
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Optional, Union

from rich.markup import escape

from .models import CommandResult

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
NOT_EXECUTABLE_EXIT_CODE = 126
NOT_FOUND_EXIT_CODE = 127

READ_CHUNK_SIZE = 64 * 1024
MAX_LINE_BYTES = 16 * 1024


class CommandRunner:
    """Runs commands without a shell, streaming their output to a logger."""

    def __init__(self, dry_run: bool = False, tail_lines: int = 40):
        """Initialize command runner.

        Args:
            dry_run: If True, only log commands without running them
            tail_lines: Number of trailing output lines kept in CommandResult
        """
        self.dry_run = dry_run
        self.tail_lines = tail_lines

    async def run(
        self,
        argv: List[str],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        display: Optional[str] = None,
        log: Optional[logging.Logger] = None,
    ) -> CommandResult:
        """Run a command to completion.

        Args:
            argv: Program and arguments
            cwd: Working directory
            env: Environment for the process (None inherits ours)
            timeout: Seconds before the process is killed (None means no limit)
            display: Printable form of the command, used in logs and the result
                instead of argv, which may contain secrets
            log: Logger receiving the command output

        Returns:
            CommandResult; a timeout gives exit code 124, a missing program 127.
            Output lines longer than MAX_LINE_BYTES are truncated.

        Raises:
            asyncio.CancelledError: When cancelled; the process is killed first
        """
        log = log or logger
        display = display or shlex.join(argv)

        if self.dry_run:
            log.info(f"[yellow](DRY RUN)[/yellow] {escape(display)}")
            return CommandResult(command=display, exit_code=0)

        log.info(f"[blue]Running[/blue] {escape(display)}")
        loop = asyncio.get_running_loop()
        start = loop.time()

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            log.error(f"[red]Command not found:[/red] {escape(str(e))}")
            return CommandResult(
                command=display, exit_code=NOT_FOUND_EXIT_CODE, output=str(e)
            )
        except PermissionError as e:
            log.error(f"[red]Command not executable:[/red] {escape(str(e))}")
            return CommandResult(
                command=display, exit_code=NOT_EXECUTABLE_EXIT_CODE, output=str(e)
            )

        tail: Deque[str] = deque(maxlen=self.tail_lines)

        def emit(raw: bytes, truncated: bool = False) -> None:
            if len(raw) > MAX_LINE_BYTES:
                raw = raw[:MAX_LINE_BYTES]
                truncated = True
            line = raw.decode(errors="replace").rstrip()
            if truncated:
                line = f"{line} ... (line truncated)"
            tail.append(line)
            log.info(escape(line))

        async def pump_output() -> int:
            assert process.stdout is not None
            buffer = b""
            # True while dropping the rest of an overlong line
            truncated = False
            while True:
                chunk = await process.stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                lines = (buffer + chunk).split(b"\n")
                buffer = lines.pop()
                for line in lines:
                    if truncated:
                        truncated = False
                        continue
                    emit(line)
                if truncated:
                    buffer = b""
                elif len(buffer) > MAX_LINE_BYTES:
                    emit(buffer[:MAX_LINE_BYTES], truncated=True)
                    buffer = b""
                    truncated = True
            if buffer and not truncated:
                emit(buffer)
            return await process.wait()

        timed_out = False
        try:
            exit_code = await asyncio.wait_for(pump_output(), timeout)
        except asyncio.TimeoutError:
            timed_out = True
            exit_code = TIMEOUT_EXIT_CODE
            log.error(f"[red]Timed out after {timeout:.0f}s:[/red] {escape(display)}")
        finally:
            # Never leave the command running once run() returns or raises
            await self._kill(process)

        duration = loop.time() - start
        if exit_code == 0:
            log.info(f"[green]Finished in {duration:.1f}s[/green]")
        elif not timed_out:
            log.error(f"[red]Exited with code {exit_code}[/red] after {duration:.1f}s")

        return CommandResult(
            command=display,
            exit_code=exit_code,
            output="\n".join(tail),
            timed_out=timed_out,
            duration=duration,
        )

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
