"""
named.conf validation through an external checker (named-checkconf)
"""

import asyncio
import math
import os
import signal
import tempfile
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..core.exceptions import ConfigIOError, ExecLaunchError
from ..core.logging_config import get_namedconf_logger

DEFAULT_CHECKER = "named-checkconf"
DEFAULT_TIMEOUT = 5.0
TIMEOUT_ERROR = "validation timed out"

logger = get_namedconf_logger()


@dataclass
class ValidationResult:
    valid: bool
    error: str = ""
    output: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CheckerRun:
    """Outcome of one checker process"""
    returncode: Optional[int]
    output: str
    timed_out: bool = False


CheckerLauncher = Callable[[List[str], float], Awaitable[CheckerRun]]


async def run_checker(args: List[str], timeout: float) -> CheckerRun:
    """
    Run the checker in its own process group with stdout and stderr merged.

    On timeout or cancellation the whole group is killed and reaped; a
    timeout still returns whatever the checker printed.
    Raises ExecLaunchError when the executable cannot be started.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            start_new_session=True
        )
    except OSError as e:
        raise ExecLaunchError(
            f"Cannot start configuration checker '{args[0]}': {e}",
            details={"checker": args[0]},
            suggestions=["Install bind-utils or set NAMED_CHECKCONF to the checker's full path"]
        ) from e

    # Drain stdout separately so whatever was printed survives a timeout
    reader = asyncio.ensure_future(process.stdout.read())
    try:
        await asyncio.wait_for(process.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Checker timed out after {timeout}s: {' '.join(args)}")
        await _kill_process_group(process)
        return CheckerRun(returncode=None, output=_decode(await reader), timed_out=True)
    except asyncio.CancelledError:
        logger.warning(f"Checker cancelled: {' '.join(args)}")
        reader.cancel()
        await _kill_process_group(process)
        raise

    return CheckerRun(returncode=process.returncode, output=_decode(await reader))


async def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """SIGKILL the checker's whole process group and reap the leader"""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    await process.wait()


def _decode(data: Optional[bytes]) -> str:
    return data.decode(errors="replace") if data else ""


class NamedConfValidator:
    """Validate configuration text with named-checkconf"""

    def __init__(
        self,
        checker_path: Optional[str] = None,
        timeout: Optional[float] = None,
        launcher: Optional[CheckerLauncher] = None
    ):
        self.checker_path = checker_path or DEFAULT_CHECKER
        self.timeout = timeout if timeout and math.isfinite(timeout) and timeout > 0 else DEFAULT_TIMEOUT
        self.launcher = launcher or run_checker

    async def validate_content(self, content: str) -> ValidationResult:
        """Write ``content`` to a temporary .conf file and run the checker on it"""
        temp_path = self._write_temp_file(content)
        try:
            return await self.validate_file(temp_path)
        finally:
            try:
                os.remove(temp_path)
            except FileNotFoundError:
                pass

    async def validate_file(self, file_path: str) -> ValidationResult:
        """Run the checker against an existing file"""
        run = await self.launcher([self.checker_path, file_path], self.timeout)

        if run.timed_out:
            return ValidationResult(valid=False, error=TIMEOUT_ERROR, output=run.output)

        if run.returncode != 0:
            logger.info(f"Configuration rejected by {self.checker_path}: {run.output.strip()}")
            return ValidationResult(valid=False, error=run.output.strip(), output=run.output)

        return ValidationResult(valid=True, error="", output=run.output)

    @staticmethod
    def _write_temp_file(content: str) -> str:
        try:
            fd, temp_path = tempfile.mkstemp(prefix="named-conf-", suffix=".conf")
        except OSError as e:
            raise ConfigIOError(f"Failed to create temporary file: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(temp_path, 0o644)
        except OSError as e:
            try:
                os.remove(temp_path)
            except FileNotFoundError:
                pass
            raise ConfigIOError(f"Failed to write temporary file {temp_path}: {e}") from e

        return temp_path
