import pytest

from gomockgen.model import (
    Interface,
    Method,
    NamedType,
    Package,
    Parameter,
    PointerType,
    PredeclaredType,
)

STRING = PredeclaredType("string")
ERROR = PredeclaredType("error")


@pytest.fixture(autouse=True)
def _isolate_gomockgen_env(monkeypatch):
    # Configuration is read from the process environment; keep tests independent of it.
    monkeypatch.delenv("GOMOCKGEN_RUNTIME_IMPORT", raising=False)
    monkeypatch.delenv("GOMOCKGEN_GOFMT", raising=False)


@pytest.fixture
def store_package() -> Package:
    return Package(
        name="store",
        import_path="example.com/store",
        interfaces=[
            Interface(
                name="Store",
                methods=[
                    Method(
                        name="Get",
                        params=[Parameter("key", STRING)],
                        results=[Parameter("", STRING), Parameter("", ERROR)],
                    ),
                    Method(
                        name="Put",
                        params=[
                            Parameter("key", STRING),
                            Parameter("", PointerType(NamedType("example.com/store/item", "Item"))),
                        ],
                    ),
                    Method(
                        name="Log",
                        params=[Parameter("format", STRING)],
                        variadic=Parameter("args", PredeclaredType("interface{}")),
                    ),
                    Method(name="Touch"),
                ],
            )
        ],
    )
