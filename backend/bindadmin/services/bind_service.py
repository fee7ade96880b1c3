"""
BIND9 daemon control: status, start, stop, restart and reload
"""

import asyncio
from typing import Dict, List, Optional

from ..core.config import Settings, get_settings
from ..core.logging_config import get_bind_logger

# systemctl wording for a unit that is not installed
UNIT_MISSING_MARKERS = (
    "could not find unit",
    "unit not found",
    "service not found",
    "not loaded",
    "does not exist",
)


class BindService:
    """BIND9 service management"""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.service_name = settings.BIND9_SERVICE_NAME
        self.rndc_key = settings.RNDC_KEY
        self.rndc_port = settings.RNDC_PORT
        self.exec_start = settings.BIND_EXEC_START
        self.exec_stop = settings.BIND_EXEC_STOP
        self.exec_reload = settings.BIND_EXEC_RELOAD
        self.command_timeout = settings.BIND_COMMAND_TIMEOUT
        self.logger = get_bind_logger()

    async def get_service_status(self) -> Dict[str, str]:
        """Get BIND9 service status"""
        result = await self._run_command(["systemctl", "is-active", self.service_name])
        state = result["stdout"].strip()

        if result["returncode"] != 127 and state and state != "unknown":
            status = "running" if state == "active" else "stopped"
            return {"status": status, "state": state, "source": "systemctl"}

        # No usable unit: ask the daemon directly
        result = await self._run_command(self._rndc_command("status"))
        if result["returncode"] == 0:
            output = result["stdout"].lower()
            if "server is up" in output or "version" in output:
                return {"status": "running", "state": "up", "source": "rndc"}
            return {"status": "stopped", "state": "down", "source": "rndc"}

        self.logger.debug(f"Could not determine BIND9 status: {result['stderr'].strip()}")
        return {"status": "unknown", "state": "unknown", "source": "none"}

    async def start_service(self) -> bool:
        """Start BIND9 service"""
        return await self._control("start", self.exec_start)

    async def stop_service(self) -> bool:
        """Stop BIND9 service"""
        return await self._control("stop", self.exec_stop)

    async def restart_service(self) -> bool:
        """Restart BIND9 service"""
        result = await self._run_command(["systemctl", "restart", self.service_name])
        if result["returncode"] == 0:
            self.logger.info("BIND9 service restarted successfully")
            return True

        if not self._unit_missing(result):
            self.logger.error(f"Failed to restart BIND9 service: {self._output(result)}")
            return False

        # No unit: stop and start through the configured commands
        if not await self.stop_service():
            return False
        await asyncio.sleep(1)
        return await self.start_service()

    async def reload_service(self) -> bool:
        """Reload BIND9 configuration"""
        result = await self._run_command(["systemctl", "reload", self.service_name])
        if result["returncode"] == 0:
            self.logger.info("BIND9 configuration reloaded successfully")
            return True

        if self._unit_missing(result) and self.exec_reload:
            self.logger.warning("BIND9 unit not available, using BIND_EXEC_RELOAD")
            result = await self._run_shell(self.exec_reload)
        else:
            self.logger.warning("systemctl reload failed, trying rndc reload")
            result = await self._run_command(self._rndc_command("reload"))

        success = result["returncode"] == 0
        if success:
            self.logger.info("BIND9 configuration reloaded successfully")
        else:
            self.logger.error(f"Failed to reload BIND9 configuration: {self._output(result)}")
        return success

    async def _control(self, action: str, exec_command: Optional[str]) -> bool:
        result = await self._run_command(["systemctl", action, self.service_name])

        if result["returncode"] != 0 and self._unit_missing(result):
            if not exec_command:
                self.logger.error(f"BIND9 unit not available and BIND_EXEC_{action.upper()} is not configured")
                return False
            self.logger.warning(f"BIND9 unit not available, using BIND_EXEC_{action.upper()}")
            result = await self._run_shell(exec_command)

        success = result["returncode"] == 0
        if success:
            self.logger.info(f"BIND9 service {action} succeeded")
        else:
            self.logger.error(f"Failed to {action} BIND9 service: {self._output(result)}")
        return success

    def _rndc_command(self, action: str) -> List[str]:
        command = ["rndc"]
        if self.rndc_key:
            command += ["-k", self.rndc_key]
        if self.rndc_port and action == "status":
            command += ["-p", str(self.rndc_port)]
        return command + [action]

    def _expand(self, command: str) -> str:
        """Substitute $RNDC_KEY and $RNDC_PORT in a configured shell command"""
        key = self.rndc_key or ""
        port = str(self.rndc_port or "")
        for name, value in (("RNDC_KEY", key), ("RNDC_PORT", port)):
            command = command.replace(f"${{{name}}}", value).replace(f"${name}", value)
        return command

    async def _run_shell(self, command: str) -> Dict:
        return await self._run_command(["/bin/sh", "-c", self._expand(command)])

    @staticmethod
    def _unit_missing(result: Dict) -> bool:
        if result["returncode"] == 127:
            return True
        output = (result["stdout"] + result["stderr"]).lower()
        return any(marker in output for marker in UNIT_MISSING_MARKERS)

    @staticmethod
    def _output(result: Dict) -> str:
        return (result["stderr"] or result["stdout"]).strip()

    async def _run_command(self, command: List[str], timeout: Optional[float] = None) -> Dict:
        """Run system command asynchronously, handling missing binaries gracefully"""
        timeout = timeout or self.command_timeout
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError as e:
            # Binary missing (systemctl, rndc) -> don't spam stack traces
            self.logger.error(f"Command not found: {' '.join(command)}")
            return {"returncode": 127, "stdout": "", "stderr": str(e)}
        except OSError as e:
            self.logger.error(f"Command failed: {' '.join(command)}: {e}")
            return {"returncode": -1, "stdout": "", "stderr": str(e)}

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.error(f"Command timed out: {' '.join(command)}")
            process.kill()
            await process.wait()
            return {"returncode": -1, "stdout": "", "stderr": "Command timed out"}

        return {
            "returncode": process.returncode,
            "stdout": stdout.decode(errors="replace"),
            "stderr": stderr.decode(errors="replace")
        }
