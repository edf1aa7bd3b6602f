from __future__ import annotations

import os
import shutil
import subprocess
import textwrap

import pytest

from gomockgen.config import RuntimeSupport
from gomockgen.generator import generate_mock_source
from gomockgen.model import Interface, Method, Package, Parameter, PredeclaredType

pytestmark = pytest.mark.skipif(shutil.which("go") is None, reason="go toolchain not available")

STRING = PredeclaredType("string")

# The identifiers generated mocks use from the runtime package, with no behavior:
# Invoke returns no results so every mock falls back to zero values.
_RUNTIME_GO = textwrap.dedent(
    """\
    package rt

    type Param interface{}

    type Matcher interface{}

    type InOrderContext struct{}

    var GlobalFailHandler = func(message string, callerSkip ...int) {}

    func Times(n int) Matcher { return n }

    type GenericMock struct{}

    func GetGenericMockFrom(mock interface{}) *GenericMock { return &GenericMock{} }

    func (m *GenericMock) Invoke(methodName string, params ...Param) []Param { return nil }

    func (m *GenericMock) Verify(ctx *InOrderContext, matcher Matcher, methodName string, params ...Param) {}
    """
)

_MOCKS_TEST_GO = textwrap.dedent(
    """\
    package mocks

    import "testing"

    func TestUnstubbedCallsReturnZeroValues(t *testing.T) {
    \tm := NewMockStore()
    \tif s, err := m.Get("k"); s != "" || err != nil {
    \t\tt.Fatalf("Get() = %q, %v", s, err)
    \t}
    \tm.Log("%d %d", 1, 2)
    \tm.Log("none")
    \tm.VerifyWasCalledOnce().Log("%d %d", 1, 2)
    \tif err := m.VerifyWasCalled(nil).Close(); err != nil {
    \t\tt.Fatalf("verifier Close() = %v", err)
    \t}

    \tr := NewMockRepo()
    \tif err := r.Save("r"); err != nil {
    \t\tt.Fatalf("Save() = %v", err)
    \t}
    \tr.Attach("m")
    \tr.Emit("a", "b", "c")
    \tr.Use("x")
    \tr.VerifyWasCalledInOrder(nil, nil).Emit("a")
    }
    """
)


def _store() -> Package:
    return Package(
        name="store",
        interfaces=[
            Interface(
                name="Store",
                methods=[
                    Method(
                        name="Get",
                        params=[Parameter("key", STRING)],
                        results=[Parameter("", STRING), Parameter("", PredeclaredType("error"))],
                    ),
                    Method(
                        name="Log",
                        params=[Parameter("format", STRING)],
                        variadic=Parameter("args", PredeclaredType("interface{}")),
                    ),
                    Method(name="Close", results=[Parameter("", PredeclaredType("error"))]),
                ],
            )
        ],
    )


def _repo() -> Package:
    # Parameter names that match generated locals, the receivers and the runtime alias.
    return Package(
        name="repo",
        interfaces=[
            Interface(
                name="Repo",
                methods=[
                    Method(
                        name="Save",
                        params=[Parameter("result", STRING)],
                        results=[Parameter("", PredeclaredType("error"))],
                    ),
                    Method(name="Attach", params=[Parameter("mock", STRING)]),
                    Method(
                        name="Emit",
                        params=[Parameter("_params", STRING)],
                        variadic=Parameter("_param", STRING),
                    ),
                    Method(name="Use", params=[Parameter("rt", STRING)]),
                ],
            )
        ],
    )


def _go(args: list[str], cwd) -> subprocess.CompletedProcess:
    env = dict(os.environ, GOFLAGS="-mod=mod", GOPROXY="off", GOWORK="off")
    return subprocess.run(["go", *args], cwd=cwd, env=env, capture_output=True, text=True)


def test_generated_mocks_compile_and_run(tmp_path):
    (tmp_path / "go.mod").write_text("module example.com/mocktest\n\ngo 1.18\n", encoding="utf-8")
    (tmp_path / "rt").mkdir()
    (tmp_path / "rt" / "rt.go").write_text(_RUNTIME_GO, encoding="utf-8")

    runtime = RuntimeSupport(import_path="example.com/mocktest/rt")
    mocks = tmp_path / "mocks"
    mocks.mkdir()
    for name, pkg in (("store", _store()), ("repo", _repo())):
        data = generate_mock_source(pkg, source=f"{name}.go", package_name="mocks", runtime=runtime, formatter=None)
        (mocks / f"mock_{name}.go").write_bytes(data)
    (mocks / "mocks_test.go").write_text(_MOCKS_TEST_GO, encoding="utf-8")

    vet = _go(["vet", "./..."], tmp_path)
    assert vet.returncode == 0, vet.stderr
    test = _go(["test", "./..."], tmp_path)
    assert test.returncode == 0, test.stdout + test.stderr
