"""
File and path helpers.

Common operations for collecting input scans and naming output files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Set, Union

# Supported input types
PDF_EXTENSIONS = {".pdf"}
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".webp"}
INPUT_EXTENSIONS = PDF_EXTENSIONS | IMAGE_EXTENSIONS


def is_pdf(path: Path) -> bool:
    return Path(path).suffix.lower() in PDF_EXTENSIONS


def is_image(path: Path) -> bool:
    return Path(path).suffix.lower() in IMAGE_EXTENSIONS


def safe_stem(value: Union[str, Path]) -> str:
    """
    Filesystem-safe version of a name.

    Keeps letters (Cyrillic included), digits, ``-``, ``_`` and ``.``;
    everything else becomes ``_``.
    """
    text = value.stem if isinstance(value, Path) else str(value)
    cleaned = "".join(
        ch if ch.isalnum() or ch in ("-", "_", ".") else "_"
        for ch in text.strip()
    )
    return cleaned.strip(".") or "_"


def ensure_dir(path: Path) -> Path:
    """Create ``path`` (and parents) if missing and return it."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def unique_path(path: Path, taken: Set[Path]) -> Path:
    """
    Return ``path``, or ``name_2.ext``, ``name_3.ext``... if already in
    ``taken``. The returned path is added to ``taken``.
    """
    path = Path(path)
    candidate = path
    counter = 2
    while candidate in taken:
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        counter += 1

    taken.add(candidate)
    return candidate


def iter_input_files(paths: Iterable[Union[str, Path]]) -> Iterator[Path]:
    """
    Expand CLI arguments into input files.

    Files are yielded in the order given; directories contribute their
    supported files sorted by name. Unsupported files are passed through so
    the page extractor can report them.

    Yields:
        Paths to input files
    """
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            for child in sorted(path.iterdir()):
                if child.is_file() and child.suffix.lower() in INPUT_EXTENSIONS:
                    yield child
        else:
            yield path
