"""Subprocess execution service for hostupdater."""

import os
import shutil
import subprocess
from typing import Dict, List, Optional

from hostupdater.errors import UpdaterError
from hostupdater.models import ToolResult, ToolStatus


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(
        self,
        logger,
        default_timeout: Optional[float] = None,
        subprocess_module=subprocess,
    ):
        self.logger = logger
        self.default_timeout = default_timeout
        self.subprocess = subprocess_module

    def is_available(self, command: str) -> bool:
        return shutil.which(command) is not None

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = self.subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                encoding="utf-8",
                errors="replace",
                timeout=effective_timeout,
                env=self._merge_env(env),
            )
        except FileNotFoundError as exc:
            raise UpdaterError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise UpdaterError(f"Command timed out after {effective_timeout}s: {cmd_str}") from exc
        except OSError as exc:
            raise UpdaterError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if result.returncode == 0 or not check:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"
        raise UpdaterError(message)

    def invoke(
        self,
        cmd: List[str],
        capture_output: bool = False,
        env: Optional[Dict[str, str]] = None,
    ) -> ToolResult:
        """Run a tool and classify the outcome instead of raising.

        Without ``capture_output`` the combined stdout/stderr is streamed line
        by line through the logger so it lands in the log file as well.
        """
        if not self.is_available(cmd[0]):
            self.logger.debug("Command not present: %s", cmd[0])
            return ToolResult(status=ToolStatus.NOT_PRESENT)

        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        if capture_output:
            try:
                result = self.subprocess.run(
                    cmd,
                    text=True,
                    capture_output=True,
                    encoding="utf-8",
                    errors="replace",
                    env=self._merge_env(env),
                )
            except FileNotFoundError:
                return ToolResult(status=ToolStatus.NOT_PRESENT)
            except OSError as exc:
                self.logger.warning("Failed to execute command: %s. %s", cmd_str, exc)
                return ToolResult(status=ToolStatus.FAILED)
            if result.returncode != 0 and result.stderr:
                self.logger.debug("Command stderr: %s", result.stderr.strip())
            return ToolResult(
                status=ToolStatus.SUCCESS if result.returncode == 0 else ToolStatus.FAILED,
                returncode=result.returncode,
                stdout=result.stdout or "",
            )

        try:
            process = self.subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                env=self._merge_env(env),
            )
        except FileNotFoundError:
            return ToolResult(status=ToolStatus.NOT_PRESENT)
        except OSError as exc:
            self.logger.warning("Failed to execute command: %s. %s", cmd_str, exc)
            return ToolResult(status=ToolStatus.FAILED)

        try:
            if process.stdout:
                for line in process.stdout:
                    line = line.rstrip()
                    if line:
                        self.logger.info("  %s", line)
        finally:
            returncode = process.wait()

        return ToolResult(
            status=ToolStatus.SUCCESS if returncode == 0 else ToolStatus.FAILED,
            returncode=returncode,
        )

    @staticmethod
    def _merge_env(env: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if not env:
            return None
        merged = dict(os.environ)
        merged.update(env)
        return merged
