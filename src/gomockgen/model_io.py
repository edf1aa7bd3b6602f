"""Reading and writing interface models as JSON or MessagePack documents."""

from __future__ import annotations

import json
from pathlib import Path

import msgpack

from .errors import ModelError
from .model import Package, package_from_dict, package_to_dict

_MSGPACK_SUFFIXES = {".msgpack", ".mpk"}


def load_package(path: str | Path) -> Package:
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ModelError(f"failed to read model {path}: {e}") from e

    try:
        if path.suffix in _MSGPACK_SUFFIXES:
            obj = msgpack.unpackb(raw, raw=False)
        else:
            obj = json.loads(raw.decode("utf-8"))
    except Exception as e:  # noqa: BLE001 - boundary parse
        raise ModelError(f"failed to parse model {path}: {e}") from e
    return package_from_dict(obj)


def dump_package(pkg: Package, path: str | Path) -> None:
    path = Path(path)
    obj = package_to_dict(pkg)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix in _MSGPACK_SUFFIXES:
        path.write_bytes(msgpack.packb(obj, use_bin_type=True))
    else:
        path.write_text(json.dumps(obj, indent=2) + "\n", encoding="utf-8")
