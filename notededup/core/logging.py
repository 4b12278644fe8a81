import json
import os
from typing import Any, Dict, List, Optional, Protocol

from loguru import logger


class PipelineObserver(Protocol):
    def on_run_start(self, name: str, run_id: str): ...

    def on_step_start(self, step_name: str, config: Dict[str, Any], depth: int): ...

    def on_step_end(self, step_name: str, duration: float, status: str, state_json: str, depth: int): ...

    def on_artifact(self, label: str, data: Any, depth: int): ...

    def on_run_end(self, duration: float): ...

    def log_summary(self, summary_text: str): ...


class PipelineLogger:
    """
    loguru-backed observer.

    The host application's sinks are left alone. With debug=True each run adds
    its own sink for <log_dir>/dedup_debug_<run_id>.log (log_dir defaults to
    $NOTEDEDUP_LOG_DIR or ./logs) carrying every phase's settings, output state
    and artifacts, and removes it again when the run ends.
    """

    def __init__(self, run_id: str, debug: bool = False, log_dir: Optional[str] = None):
        self.debug = debug
        self.run_id = run_id
        self.log_file = None
        self._sink_ids: List[int] = []

        if self.debug:
            log_dir = log_dir or os.getenv("NOTEDEDUP_LOG_DIR") or os.path.join(os.getcwd(), "logs")
            os.makedirs(log_dir, exist_ok=True)
            self.log_file = os.path.join(log_dir, f"dedup_debug_{run_id}.log")

    def _open_sinks(self):
        if self.log_file and not self._sink_ids:
            self._sink_ids.append(
                logger.add(self.log_file, format="<green>{time:H:mm:ss}</green>\n{message}\n", level="DEBUG")
            )

    def close(self):
        """Removes only the sinks this logger added."""
        while self._sink_ids:
            sink_id = self._sink_ids.pop()
            try:
                logger.remove(sink_id)
            except ValueError:
                # already removed by the host
                pass

    def _format_json(self, data: Any) -> str:
        try:
            s = json.dumps(data, indent=2, default=str)
            s = s.replace("\\n", "\n      ")
            return s
        except (TypeError, ValueError):
            return str(data)

    def _truncate_large_strings(self, obj: Any, max_len: int = 1000) -> Any:
        if isinstance(obj, str):
            if len(obj) > max_len:
                return obj[:max_len] + f"... [truncated {len(obj) - max_len} chars]"
            return obj
        if isinstance(obj, dict):
            return {k: self._truncate_large_strings(v, max_len) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self._truncate_large_strings(i, max_len) for i in obj]
        return obj

    def _log(self, text: str, depth: int):
        if not self.debug: return

        step_indent = "   " * depth
        lines = text.splitlines()
        if not lines: return

        final_msg = "\n".join(f"{step_indent}{line}" for line in lines)
        logger.debug(final_msg)

    # -------------------------------------------------------------------------
    # PUBLIC EVENTS
    # -------------------------------------------------------------------------

    def on_run_start(self, name: str, run_id: str):
        self._open_sinks()
        if not self.debug: return
        divider = "=" * 80
        msg = f"{divider}\nLAUNCHING DEDUPLICATION: {name} (ID: {run_id})\n{divider}"
        self._log(msg, 0)

    def on_step_start(self, step_name: str, config: Dict[str, Any], depth: int):
        safe_conf = {k: v for k, v in config.items() if k != "debug"}
        conf_str = self._format_json(safe_conf)

        msg = (
            f"START PHASE: {step_name}\n"
            f"--- SETTINGS ---\n"
            f"{conf_str}\n"
            f"----------------"
        )
        self._log(msg, depth)

    def on_step_end(self, step_name: str, duration: float, status: str, state_json: str, depth: int):
        if not self.debug: return
        try:
            state_dict = json.loads(state_json)
            clean_json_str = self._format_json(self._truncate_large_strings(state_dict))
        except ValueError:
            clean_json_str = state_json

        divider = "=" * 80
        msg = (
            f"--- OUTPUT STATE ---\n"
            f"{clean_json_str}\n"
            f"{divider}\n"
            f"FINISHED: {step_name} | STATUS: {status} | DURATION: {duration:.4f}s\n"
            f"{divider}"
        )
        self._log(msg, depth)

    def on_artifact(self, label: str, data: Any, depth: int):
        if isinstance(data, (dict, list)):
            content = self._format_json(data)
        else:
            content = str(data)

        msg = f">>> [ARTIFACT] {label}\n{content}"
        self._log(msg, depth=depth)

    def on_run_end(self, duration: float):
        divider = "=" * 80
        msg = f"{divider}\nTOTAL DEDUPLICATION TIME: {duration:.4f}s\n{divider}"
        self._log(msg, 0)

    def log_summary(self, summary_text: str):
        if not self.debug or not self.log_file: return
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write("\n" + summary_text + "\n")
        except OSError as e:
            logger.warning(f"Could not write summary to {self.log_file}: {e}")
