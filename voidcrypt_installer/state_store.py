from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    fmt = _detect_format(p)
    if fmt in {"yaml", "yml"}:
        import yaml

        p.write_text(yaml.safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def new_state(config_summary: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "version": 1,
        "config": dict(config_summary),
        "execution": {
            "current_step": None,
            "completed_steps": [],
            "decisions": {},
            "errors": [],
            "cleanup_failures": [],
        },
    }


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def record_error(state: Dict[str, Any], error: BaseException) -> None:
    exe = state.setdefault("execution", {})
    exe.setdefault("errors", []).append(
        {
            "step": exe.get("current_step"),
            "type": type(error).__name__,
            "error": str(error),
        }
    )
