from __future__ import annotations

import logging
from pathlib import Path

from .generator import generate_mock_source
from .scan import package_source, scan_package

logger = logging.getLogger(__name__)


def output_file_path(
    *,
    out_dir: Path,
    source_file: str | None = None,
    interface_names: list[str] | None = None,
    override: str | Path | None = None,
) -> Path:
    """Where a mock file goes unless the caller names it explicitly.

    Source mode: `mock_<file stem>_test.go`. Package mode:
    `mock_<last interface, lowercased>_test.go`.
    """
    if override:
        return Path(override)
    if source_file is not None:
        stem = Path(source_file).name
        if stem.endswith(".go"):
            stem = stem[: -len(".go")]
        return Path(out_dir) / f"mock_{stem}_test.go"
    if not interface_names:
        raise ValueError("either source_file or interface_names is required")
    return Path(out_dir) / f"mock_{interface_names[-1].lower()}_test.go"


def write_if_changed(path: Path, data: bytes) -> bool:
    """Write `data` unless the file already holds exactly these bytes."""
    path = Path(path)
    if path.exists() and path.read_bytes() == data:
        logger.info("unchanged: %s", path)
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info("wrote: %s", path)
    return True


def generate_mock(
    package_path: str,
    interface_name: str,
    out_dir: str | Path,
    package_out: str,
) -> tuple[bool, Path]:
    """Generate the mock of one interface of a Go package into `out_dir`.

    Returns whether the file changed, and its path.
    """
    names = [interface_name]
    pkg = scan_package(package_path, names)
    data = generate_mock_source(
        pkg,
        source=package_source(package_path, names),
        package_name=package_out,
    )
    path = output_file_path(out_dir=Path(out_dir), interface_names=names)
    return write_if_changed(path, data), path
