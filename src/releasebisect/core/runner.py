"""Command execution using invoke."""

import contextlib
import os
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from releasebisect.core.log import logger


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    Runs git listings, the archive extractor, and the release
    under test.
    """

    def kill(self) -> None:
        """Kill the running subprocess.

        invoke's kill() sends signal.SIGKILL, which does not exist
        on Windows. os.kill() there passes the number straight to
        TerminateProcess(), so send 9 directly.
        """
        import platform

        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return

        super().kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        log_level: str | None = None,
        check: bool = True,
        hide: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Execute a command.

        Args:
            command: Command string to execute
            cwd: Working directory for command execution
            timeout: Maximum execution time in seconds
            log_level: Log captured output lines at this level
            check: If True, raise on non-zero exit code
            hide: Capture output instead of echoing it to the terminal
            env: Extra environment variables (added to os.environ)

        Returns:
            invoke.Result with stdout, stderr, exited (return code);
            exited is -1 when the command timed out

        Raises:
            invoke.UnexpectedExit: If check=True and command
                returns non-zero
        """
        kwargs = {
            "hide": hide,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        logger.spew("Running command", command=command, cwd=str(cwd) if cwd else None)

        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = -1

        if log_level and hide:
            for line in result.stdout.splitlines():
                logger.log(log_level, line.rstrip())
            for line in result.stderr.splitlines():
                logger.log(log_level, line.rstrip())

        return result
