"""Run report generation service."""

import json
import os
import tempfile
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ReportService:
    """Collects per-stage timing and the run result, written as JSON."""

    def __init__(self, report_file: str, logger):
        self.report_file = report_file
        self.logger = logger
        self.report: Dict[str, Any] = {
            "run_id": None,
            "status": "running",
            "started_at": None,
            "finished_at": None,
            "duration_seconds": None,
            "config": {},
            "steps": [],
            "result": None,
        }

    def start_run(self, run_id: str, started_at: str, config: Dict[str, Any]):
        self.report["run_id"] = run_id
        self.report["status"] = "running"
        self.report["started_at"] = started_at
        self.report["config"] = config

    def step_started(self, step_name: str):
        self.report["steps"].append(
            {
                "name": step_name,
                "status": "running",
                "started_at": self._now(),
                "finished_at": None,
                "duration_seconds": None,
                "error": None,
            }
        )

    def step_finished(self, step_name: str, status: str, error: Optional[str] = None):
        for step in reversed(self.report["steps"]):
            if step["name"] == step_name and step["status"] == "running":
                step["status"] = status
                step["finished_at"] = self._now()
                step["error"] = error
                started_at = datetime.fromisoformat(step["started_at"])
                finished_at = datetime.fromisoformat(step["finished_at"])
                step["duration_seconds"] = (finished_at - started_at).total_seconds()
                break

    def finalize(self, run_result) -> Optional[str]:
        self.report["status"] = run_result.status
        self.report["finished_at"] = self._now()
        if self.report.get("started_at"):
            started_at = datetime.fromisoformat(self.report["started_at"])
            finished_at = datetime.fromisoformat(self.report["finished_at"])
            self.report["duration_seconds"] = (finished_at - started_at).total_seconds()
        self.report["result"] = self._serialize(run_result)
        return self.write()

    def write(self) -> Optional[str]:
        directory = os.path.dirname(self.report_file) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix="update-report-", suffix=".json", dir=directory)
        except OSError as exc:
            self.logger.warning("Could not write report file '%s': %s", self.report_file, exc)
            return None

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.report, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.report_file)
        except (OSError, TypeError, ValueError) as exc:
            self.logger.warning("Could not write report file '%s': %s", self.report_file, exc)
            try:
                os.remove(temp_path)
            except OSError:
                pass
            return None
        return self.report_file

    @staticmethod
    def _serialize(run_result) -> Dict[str, Any]:
        data = asdict(run_result)
        data["change_set"] = [
            {"name": record.name, "old": record.old_label, "new": record.new_label}
            for record in run_result.change_set
        ]
        if run_result.restart_state is not None:
            data["restart_state"] = run_result.restart_state.value
        if run_result.executor is not None:
            data["executor"]["steps"] = [
                {"name": step.name, "status": step.status.value, "detail": step.detail}
                for step in run_result.executor.steps
            ]
        return data

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
