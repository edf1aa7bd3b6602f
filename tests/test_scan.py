from __future__ import annotations

import json
import shutil
import subprocess
import textwrap

import pytest

from gomockgen.errors import ModelError, ScanError
from gomockgen.model import ArrayType, NamedType, Parameter, PointerType, PredeclaredType
from gomockgen.scan import package_source, scan_package, scan_source

_HAS_GO = shutil.which("go") is not None


def _go_file(tmp_path):
    src = tmp_path / "store.go"
    src.write_text("package store\n", encoding="utf-8")
    return src


def test_scan_missing_go_raises_scan_error(monkeypatch, tmp_path):
    def fake_run(*args, **kwargs):  # noqa: ANN001
        raise FileNotFoundError("go")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ScanError, match=r"Go toolchain not found"):
        scan_source(_go_file(tmp_path))


def test_scan_failure_reports_scanner_output(monkeypatch, tmp_path):
    def fake_run(cmd, **kwargs):  # noqa: ANN001
        return subprocess.CompletedProcess(
            cmd, 1, stdout="", stderr="Closer: recursively embedded interfaces are not supported\n"
        )

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ScanError, match=r"go scan failed\nCloser: recursively"):
        scan_source(_go_file(tmp_path))


def test_scan_output_is_converted_to_a_model(monkeypatch, tmp_path):
    seen: dict[str, object] = {}
    doc = {
        "name": "store",
        "import_path": "example.com/store",
        "dot_imports": [],
        "interfaces": [
            {
                "name": "Store",
                "methods": [
                    {
                        "name": "Keys",
                        "params": [],
                        "variadic": None,
                        "results": [{"name": "", "type": {"kind": "array", "len": -1, "elem": {"kind": "predeclared", "name": "string"}}}],
                    }
                ],
            }
        ],
    }

    def fake_run(cmd, **kwargs):  # noqa: ANN001
        seen["cmd"] = cmd
        seen["cwd"] = kwargs["cwd"]
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(doc), stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    pkg = scan_source(_go_file(tmp_path), import_path="example.com/store")
    assert pkg.name == "store"
    assert pkg.interfaces[0].methods[0].results == [Parameter("", ArrayType(PredeclaredType("string")))]
    cmd = seen["cmd"]
    assert cmd[:3] == ["go", "run", "."]
    assert cmd[3:5] == ["--file", str((tmp_path / "store.go").resolve())]
    assert cmd[5:] == ["--import-path", "example.com/store"]


def test_scan_output_must_be_json(monkeypatch, tmp_path):
    def fake_run(cmd, **kwargs):  # noqa: ANN001
        return subprocess.CompletedProcess(cmd, 0, stdout="not json", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ScanError, match="failed to parse go scan output"):
        scan_source(_go_file(tmp_path))


def test_scan_output_must_be_a_valid_model(monkeypatch, tmp_path):
    def fake_run(cmd, **kwargs):  # noqa: ANN001
        return subprocess.CompletedProcess(cmd, 0, stdout='{"interfaces": []}', stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ModelError):
        scan_source(_go_file(tmp_path))


def test_scan_source_missing_file(tmp_path):
    with pytest.raises(ScanError, match="source file not found"):
        scan_source(tmp_path / "nope.go")


def test_scan_package_requires_names():
    with pytest.raises(ScanError, match="at least one interface"):
        scan_package("example.com/store", [" ", ""])


def test_package_source():
    assert package_source("example.com/store", ["Store", "Closer"]) == "example.com/store (interfaces: Store,Closer)"


_STORE_GO = textwrap.dedent(
    """\
    package store

    import (
    \t"context"
    \ttmpl "text/template"
    )

    type Item struct{}

    type Store interface {
    \tGet(ctx context.Context, key string) (*Item, error)
    \tPut(string, ...int)
    \tRender(t *tmpl.Template) error
    }

    type Closer interface {
    \terror
    \tClose() error
    }
    """
)


@pytest.mark.skipif(not _HAS_GO, reason="go toolchain not available")
def test_scan_source_with_go(tmp_path):
    src = tmp_path / "store.go"
    src.write_text(_STORE_GO, encoding="utf-8")

    pkg = scan_source(src, import_path="example.com/store")
    assert pkg.name == "store"
    assert [i.name for i in pkg.interfaces] == ["Store", "Closer"]

    get, put, render = pkg.interfaces[0].methods
    assert get.params[0] == Parameter("ctx", NamedType("context", "Context"))
    assert get.results[0].type == PointerType(NamedType("example.com/store", "Item"))
    assert put.params == [Parameter("", PredeclaredType("string"))]
    assert put.variadic == Parameter("", PredeclaredType("int"))
    assert render.params[0].type == PointerType(NamedType("text/template", "Template"))

    assert [m.name for m in pkg.interfaces[1].methods] == ["Error", "Close"]


@pytest.mark.skipif(not _HAS_GO, reason="go toolchain not available")
def test_scan_rejects_recursive_embedding(tmp_path):
    src = tmp_path / "nested.go"
    src.write_text(
        "package nested\n\ntype A interface{ M() }\ntype B interface{ A }\ntype C interface{ B }\n",
        encoding="utf-8",
    )
    with pytest.raises(ScanError, match="recursively embedded"):
        scan_source(src)


@pytest.mark.skipif(not _HAS_GO or shutil.which("gofmt") is None, reason="go toolchain not available")
def test_scanned_model_generates_formatted_mock(tmp_path):
    from gomockgen.generator import generate_mock_source

    src = tmp_path / "store.go"
    src.write_text(_STORE_GO, encoding="utf-8")
    pkg = scan_source(src, import_path="example.com/store")

    out = generate_mock_source(pkg, source=str(src), package_name="mock_store").decode("utf-8")
    assert 'store "example.com/store"' in out
    assert "Get(ctx context.Context, key string) (*store.Item, error)" in out
    assert "Render(t *template.Template) error" in out


_DOT_GO = textwrap.dedent(
    """\
    package reader

    import . "strings"

    type Options struct{}

    type Source interface {
    \tOpen(r *Reader, opts Options) (Builder, Cursor)
    }
    """
)


@pytest.mark.skipif(not _HAS_GO, reason="go toolchain not available")
def test_dot_imported_names_stay_unqualified(tmp_path):
    src = tmp_path / "reader.go"
    src.write_text(_DOT_GO, encoding="utf-8")

    pkg = scan_source(src, import_path="example.com/reader")
    assert pkg.dot_imports == ["strings"]
    (open_,) = pkg.interfaces[0].methods
    assert open_.params[0].type == PointerType(NamedType("", "Reader"))
    assert open_.params[1].type == NamedType("example.com/reader", "Options")
    assert open_.results[0].type == NamedType("", "Builder")


@pytest.mark.skipif(not _HAS_GO, reason="go toolchain not available")
def test_package_scan_knows_types_from_sibling_files(tmp_path):
    (tmp_path / "go.mod").write_text("module example.com/reader\n\ngo 1.18\n", encoding="utf-8")
    (tmp_path / "reader.go").write_text(_DOT_GO.replace("Cursor", "Position"), encoding="utf-8")
    (tmp_path / "position.go").write_text("package reader\n\ntype Position int\n", encoding="utf-8")

    pkg = scan_package("example.com/reader", ["Source"], cwd=tmp_path)
    (open_,) = pkg.interfaces[0].methods
    assert open_.results[0].type == NamedType("", "Builder")
    assert open_.results[1].type == NamedType("example.com/reader", "Position")
