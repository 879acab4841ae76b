import shlex
import subprocess
import logging
from collections import deque
from typing import List, Optional, Sequence
from passenc.config.models import FFmpegConfig
from passenc.domain.errors import ExecutionFailure
from passenc.domain.models import Token

# Exit code reported when the binary cannot be started at all
SPAWN_FAILURE_CODE = 127


class FFmpegDriver:
    """Runs the ffmpeg binary and streams its output to a progress listener."""

    def __init__(self, config: Optional[FFmpegConfig] = None, tail_lines: int = 20):
        self.config = config or FFmpegConfig()
        self.tail_lines = tail_lines
        self.logger = logging.getLogger(__name__)

    def _build_command(self, args: Sequence[Token]) -> List[str]:
        return [self.config.binary] + [str(a) for a in args]

    def command(self, args: Sequence[Token], background: bool = False, listener=None):
        """Executes ffmpeg with the given arguments.

        Blocks until the process exits and returns its last output lines. Every
        line is passed to ``listener.handle`` before the exit status is checked.
        With ``background=True`` the running Popen handle is returned instead.
        """
        cmd = self._build_command(args)
        self.logger.debug(f"FFMPEG_CMD: {shlex.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                bufsize=1
            )
        except OSError as e:
            raise ExecutionFailure(
                f"Failed to start {self.config.binary}: {e}",
                code=SPAWN_FAILURE_CODE,
                command=cmd,
            ) from e

        if background:
            return process

        tail = deque(maxlen=self.tail_lines)
        try:
            for line in process.stdout:
                tail.append(line.rstrip())
                if listener is not None:
                    listener.handle(line)
            process.wait()
        except BaseException:
            process.kill()
            process.wait()
            raise

        output = "\n".join(tail)
        if process.returncode != 0:
            message = f"{self.config.binary} exited with code {process.returncode}"
            if output:
                message = f"{message}\n{output}"
            raise ExecutionFailure(message, code=process.returncode, command=cmd)
        return output
