from __future__ import annotations

from pathlib import Path


def metadata_path(data_dir: Path, key: str) -> Path:
    return data_dir / f"{key}.json"


def binary_dir(data_dir: Path) -> Path:
    return data_dir / "binary"


def write_text_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    try:
        tmp_path.replace(path)
    except FileNotFoundError:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text, encoding="utf-8")
        tmp_path.replace(path)
