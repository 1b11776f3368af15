"""Logging setup and agent run logs."""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.logging import RichHandler


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a rich console handler.

    Args:
        level: Log level name
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


class RunLogger:
    """Writes agent workflow runs to disk.

    Each run gets its own directory under ``runs_dir``:
    transcript.ndjson (prompts and responses), plan.json and result.json.
    """

    def __init__(self, runs_dir: Path):
        """Initialize run logger.

        Args:
            runs_dir: Directory that holds one subdirectory per run
        """
        self.runs_dir = runs_dir

    def start_run(self, project_id: str) -> str:
        """Create a run directory and return its ID.

        Args:
            project_id: Project the run operates on

        Returns:
            Run ID
        """
        run_id = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        run_dir = self._run_dir(run_id)
        run_dir.mkdir(parents=True, exist_ok=True)

        with open(run_dir / "meta.json", "w") as f:
            json.dump({"run_id": run_id, "project_id": project_id, "started": datetime.now().isoformat()}, f)

        return run_id

    def log_message(self, run_id: str, role: str, content: str) -> None:
        """Append a prompt or response to the run transcript.

        Args:
            run_id: Run ID
            role: Message role (user, assistant)
            content: Message content
        """
        entry = {
            "ts": datetime.now().isoformat(),
            "role": role,
            "content": content,
        }

        with open(self._run_dir(run_id) / "transcript.ndjson", "a") as f:
            f.write(json.dumps(entry) + "\n")

    def save_plan(self, run_id: str, plan: dict[str, Any]) -> None:
        """Save the parsed plan of a run."""
        with open(self._run_dir(run_id) / "plan.json", "w") as f:
            json.dump(plan, f, indent=2)

    def save_result(self, run_id: str, result: dict[str, Any]) -> None:
        """Save the final result of a run."""
        with open(self._run_dir(run_id) / "result.json", "w") as f:
            json.dump(result, f, indent=2)

    def _run_dir(self, run_id: str) -> Path:
        return self.runs_dir / run_id
