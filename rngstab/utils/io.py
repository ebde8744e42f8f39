"""Case dictionary helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def read_yaml_file(path: str | Path) -> Dict[str, Any]:
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} must contain a mapping at the top level")
    return data


class YamlDictSource:
    """Re-readable view of one block of a YAML file.

    Calling the source parses the file again, so edits made between solver
    iterations are picked up by ``read()``.
    """

    def __init__(self, path: str | Path, key: Optional[str] = None) -> None:
        self.path = Path(path)
        self.key = key

    def __call__(self) -> Dict[str, Any]:
        data = read_yaml_file(self.path)
        if self.key is None:
            return data
        return data.get(self.key) or {}

    def __repr__(self) -> str:
        return f"YamlDictSource({str(self.path)!r}, key={self.key!r})"
