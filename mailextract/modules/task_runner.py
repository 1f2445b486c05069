"""
Task Runner Module
Loads per-message tasks and gives them a way to report results

A task is a Python module with a run(message, context) function, sync or
async. It is looked up first as <tasks_folder>/<name>.py, then among the
built-in tasks shipped in mailextract.tasks.

SECURITY STORY: Task names come from the command line and end up in a
file path. Only plain identifiers are accepted, so "--task ../../x" can
never load code from outside the tasks folder.
"""

import importlib
import importlib.util
import inspect
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from .message_source import MessageSource
from ..utils.sanitization import sanitize_for_logging


logger = logging.getLogger(__name__)

BUILTIN_PACKAGE = "mailextract.tasks"

BUILTIN_TASKS: Dict[str, str] = {
    "stop": "Get the sender of STOP requests, for removal from messaging.",
}

_TASK_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*")

TaskFn = Callable[[Any, "TaskContext"], Any]


@dataclass
class TaskContext:
    """What a task may use besides the message itself"""
    source: MessageSource
    output_dir: Optional[Path]
    emit_fn: Callable[[str, Any], None]

    def emit(self, field: str, value: Any):
        """Report a field value through the normal output path."""
        self.emit_fn(field, value)


def normalize_task_name(name: str) -> Optional[str]:
    """Strip a trailing .py and reject anything that is not a plain name."""
    if not name:
        return None
    if name.endswith(".py"):
        name = name[:-3]
    if not _TASK_NAME_RE.fullmatch(name):
        return None
    return name


def _load_from_file(path: Path, name: str) -> Optional[TaskFn]:
    try:
        spec = importlib.util.spec_from_file_location(f"mailextract_task_{name.replace('-', '_')}", path)
        if spec is None or spec.loader is None:
            return None
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    except Exception as e:
        logger.error(f"Error loading task {sanitize_for_logging(name)}: {e}")
        return None

    run = getattr(module, "run", None)
    return run if callable(run) else None


def _load_builtin(name: str) -> Optional[TaskFn]:
    try:
        module = importlib.import_module(f"{BUILTIN_PACKAGE}.{name.replace('-', '_')}")
    except ModuleNotFoundError:
        return None

    run = getattr(module, "run", None)
    return run if callable(run) else None


def load_task(name: str, tasks_folder: Union[str, Path, None] = None) -> Optional[TaskFn]:
    """
    Find a task by name

    Args:
        name: Task name, with or without ".py"
        tasks_folder: Folder searched before the built-in tasks

    Returns:
        The task's run function, or None if no such task exists
    """
    clean = normalize_task_name(name)
    if clean is None:
        logger.warning(f"Invalid task name: {sanitize_for_logging(name)}")
        return None

    if tasks_folder:
        path = Path(tasks_folder) / f"{clean}.py"
        if path.is_file():
            task = _load_from_file(path, clean)
            if task is not None:
                return task

    return _load_builtin(clean)


async def run_task(task: TaskFn, message: Any, context: TaskContext) -> bool:
    """
    Run a task on one message

    Returns:
        True on success; failures are logged so the batch continues
    """
    try:
        result = task(message, context)
        if inspect.isawaitable(result):
            await result
        return True
    except Exception as e:
        logger.error(f"Task failed on message {sanitize_for_logging(str(message.uid))}: {e}")
        return False
