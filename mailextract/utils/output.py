"""
Output Writer Module
Routes extraction output to stdout, a file, or a file inside a directory

The -o/--output-folder value is classified once:
- an existing path is a file or directory according to the filesystem
- otherwise a trailing separator or a missing extension means directory
- anything else is a file

SECURITY STORY: An existing output file is never overwritten. Running the
same command twice fails loudly instead of silently replacing results.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, TextIO


DEFAULT_RESPONSE_FILENAME = "extractEmail.response.txt"

KIND_FILE = "file"
KIND_DIRECTORY = "directory"


@dataclass(frozen=True)
class OutputTarget:
    """Where output goes: a file, or a directory holding the default file"""
    kind: str
    path: Path

    @property
    def file_path(self) -> Path:
        if self.kind == KIND_FILE:
            return self.path
        return self.path / DEFAULT_RESPONSE_FILENAME

    @property
    def directory(self) -> Path:
        if self.kind == KIND_DIRECTORY:
            return self.path
        return self.path.parent


def resolve_output_option(raw_path: Optional[str], cwd: Optional[Path] = None) -> Optional[OutputTarget]:
    """
    Classify an output option as file or directory

    Args:
        raw_path: Value given on the command line, may be None
        cwd: Base for relative paths (default: current directory)

    Returns:
        OutputTarget, or None when no path was given
    """
    if not raw_path:
        return None

    base = cwd or Path.cwd()
    path = (base / raw_path).resolve()
    has_trailing_sep = raw_path.endswith(("/", "\\", os.sep))

    if path.exists():
        return OutputTarget(KIND_DIRECTORY if path.is_dir() else KIND_FILE, path)

    if has_trailing_sep:
        return OutputTarget(KIND_DIRECTORY, path)

    if path.suffix:
        return OutputTarget(KIND_FILE, path)

    return OutputTarget(KIND_DIRECTORY, path)


class OutputWriter:
    """
    Line-oriented writer for extraction results

    With a target, the file is created on the first line written, so a run
    that produces no output leaves no empty file behind.
    """

    def __init__(self, target: Optional[OutputTarget] = None, stream: Optional[TextIO] = None):
        """
        Args:
            target: File/directory target, or None for the stream
            stream: Stream used without a target (default: sys.stdout)

        Raises:
            FileExistsError: If the target file already exists
        """
        self.target = target
        self.stream = stream
        self._initialized = False

        if target is not None and target.file_path.exists():
            raise FileExistsError(f"Output file already exists: {target.file_path}")

    @property
    def file_path(self) -> Optional[Path]:
        return self.target.file_path if self.target else None

    def write_line(self, line: str = ""):
        if self.target is None:
            print(line, file=self.stream or sys.stdout)
            return

        path = self.target.file_path
        if not self._initialized:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x" mode: never replace a file created since the check
            with open(path, "x", encoding="utf-8"):
                pass
            self._initialized = True

        with open(path, "a", encoding="utf-8") as f:
            f.write(f"{line}\n")
