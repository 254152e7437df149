from collections.abc import Iterable
from pathlib import Path

from .errors import make_document_error

CFG_SUFFIX = ".cfg"


def discover_cfg_files(paths: Iterable[Path]) -> list[Path]:
    """Expand files and directories into a sorted list of .cfg files."""
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            for p in path.rglob(f"*{CFG_SUFFIX}"):
                if p.is_file():
                    files.append(p.resolve())
        elif path.exists():
            files.append(path.resolve())
        else:
            raise make_document_error("File or directory not found", path)
    return sorted(set(files))


def read_document(path: Path) -> str:
    """Read a .cfg file as text, keeping its line endings; a UTF-8 BOM is dropped."""
    try:
        with open(path, encoding="utf-8-sig", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise make_document_error(f"File is not valid UTF-8: {e}", path)
    except OSError as e:
        raise make_document_error(f"Cannot read file: {e}", path)


def write_document(path: Path, text: str) -> None:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise make_document_error(f"Cannot write file: {e}", path)
