"""In-memory model of Go interfaces to be mocked.

Types form a closed set of variants. Each variant renders itself through one
function in `_RENDERERS`, given the import-path -> alias map of the generated
file and an optional package whose types are written unqualified.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from .errors import ModelError


@dataclass(frozen=True)
class PredeclaredType:
    # int, string, error, interface{} spelled as `any`, ...
    name: str


@dataclass(frozen=True)
class NamedType:
    package: str  # import path; "" for types local to the mocked package
    name: str


@dataclass(frozen=True)
class PointerType:
    elem: "Type"


@dataclass(frozen=True)
class ArrayType:
    elem: "Type"
    length: int = -1  # -1 for slices


@dataclass(frozen=True)
class MapType:
    key: "Type"
    value: "Type"


@dataclass(frozen=True)
class ChanType:
    elem: "Type"
    dir: int = 0  # 0 both, 1 receive-only, 2 send-only


@dataclass(frozen=True)
class FuncType:
    params: list["Parameter"] = field(default_factory=list)
    variadic: "Parameter | None" = None
    results: list["Parameter"] = field(default_factory=list)


@dataclass(frozen=True)
class InterfaceType:
    methods: list["Method"] = field(default_factory=list)


@dataclass(frozen=True)
class StructType:
    fields: list["Parameter"] = field(default_factory=list)


Type = Union[
    PredeclaredType,
    NamedType,
    PointerType,
    ArrayType,
    MapType,
    ChanType,
    FuncType,
    InterfaceType,
    StructType,
]

CHAN_RECV = 1
CHAN_SEND = 2


@dataclass(frozen=True)
class Parameter:
    name: str
    type: Type


@dataclass(frozen=True)
class Method:
    name: str
    params: list[Parameter] = field(default_factory=list)
    variadic: Parameter | None = None
    results: list[Parameter] = field(default_factory=list)


@dataclass(frozen=True)
class Interface:
    name: str
    methods: list[Method] = field(default_factory=list)


@dataclass(frozen=True)
class Package:
    name: str
    interfaces: list[Interface] = field(default_factory=list)
    dot_imports: list[str] = field(default_factory=list)
    import_path: str = ""

    def imports(self) -> set[str]:
        """Import paths referenced by any type of any interface method."""
        out: set[str] = set()
        for iface in self.interfaces:
            for m in iface.methods:
                out |= method_imports(m)
        return out


# Rendering


def render_type(t: Type, package_map: dict[str, str], pkg_override: str = "") -> str:
    renderer = _RENDERERS.get(type(t))
    if renderer is None:
        raise TypeError(f"not a model type: {t!r}")
    return renderer(t, package_map, pkg_override)


def _render_predeclared(t: PredeclaredType, pm: dict[str, str], override: str) -> str:
    return t.name


def _render_named(t: NamedType, pm: dict[str, str], override: str) -> str:
    if not t.package or t.package == override:
        return t.name
    alias = pm.get(t.package)
    if alias is None:
        raise KeyError(f"no alias for import path {t.package!r}")
    return f"{alias}.{t.name}"


def _render_pointer(t: PointerType, pm: dict[str, str], override: str) -> str:
    return "*" + render_type(t.elem, pm, override)


def _render_array(t: ArrayType, pm: dict[str, str], override: str) -> str:
    n = "" if t.length < 0 else str(t.length)
    return f"[{n}]" + render_type(t.elem, pm, override)


def _render_map(t: MapType, pm: dict[str, str], override: str) -> str:
    return f"map[{render_type(t.key, pm, override)}]{render_type(t.value, pm, override)}"


def _render_chan(t: ChanType, pm: dict[str, str], override: str) -> str:
    elem = render_type(t.elem, pm, override)
    if t.dir == CHAN_RECV:
        return "<-chan " + elem
    if t.dir == CHAN_SEND:
        return "chan<- " + elem
    return "chan " + elem


def _func_tail(
    params: list[Parameter],
    variadic: Parameter | None,
    results: list[Parameter],
    pm: dict[str, str],
    override: str,
) -> str:
    args = [render_type(p.type, pm, override) for p in params]
    if variadic is not None:
        args.append("..." + render_type(variadic.type, pm, override))
    rets = [render_type(p.type, pm, override) for p in results]
    out = "(" + ", ".join(args) + ")"
    if len(rets) == 1:
        out += " " + rets[0]
    elif rets:
        out += " (" + ", ".join(rets) + ")"
    return out


def _render_func(t: FuncType, pm: dict[str, str], override: str) -> str:
    return "func" + _func_tail(t.params, t.variadic, t.results, pm, override)


def _render_interface(t: InterfaceType, pm: dict[str, str], override: str) -> str:
    if not t.methods:
        return "interface{}"
    body = "; ".join(
        m.name + _func_tail(m.params, m.variadic, m.results, pm, override) for m in t.methods
    )
    return "interface{ " + body + " }"


def _render_struct(t: StructType, pm: dict[str, str], override: str) -> str:
    if not t.fields:
        return "struct{}"
    parts = []
    for f in t.fields:
        ts = render_type(f.type, pm, override)
        # Embedded fields have no name.
        parts.append(f"{f.name} {ts}" if f.name else ts)
    return "struct{ " + "; ".join(parts) + " }"


_RENDERERS: dict[type, Callable[[Any, dict[str, str], str], str]] = {
    PredeclaredType: _render_predeclared,
    NamedType: _render_named,
    PointerType: _render_pointer,
    ArrayType: _render_array,
    MapType: _render_map,
    ChanType: _render_chan,
    FuncType: _render_func,
    InterfaceType: _render_interface,
    StructType: _render_struct,
}


# Import collection


def type_imports(t: Type) -> set[str]:
    if isinstance(t, NamedType):
        return {t.package} if t.package else set()
    if isinstance(t, (PointerType, ArrayType, ChanType)):
        return type_imports(t.elem)
    if isinstance(t, MapType):
        return type_imports(t.key) | type_imports(t.value)
    if isinstance(t, FuncType):
        return _params_imports([*t.params, *_opt(t.variadic), *t.results])
    if isinstance(t, InterfaceType):
        out: set[str] = set()
        for m in t.methods:
            out |= method_imports(m)
        return out
    if isinstance(t, StructType):
        return _params_imports(t.fields)
    return set()


def method_imports(m: Method) -> set[str]:
    return _params_imports([*m.params, *_opt(m.variadic), *m.results])


def _params_imports(params: list[Parameter]) -> set[str]:
    out: set[str] = set()
    for p in params:
        out |= type_imports(p.type)
    return out


def _opt(p: Parameter | None) -> list[Parameter]:
    return [] if p is None else [p]


# Documents (JSON-shaped dicts as emitted by the Go scanner)


def package_from_dict(obj: Any) -> Package:
    if not isinstance(obj, dict):
        raise ModelError("model: expected object at top level")
    name = _req_str(obj, "name", "package")
    import_path = obj.get("import_path") or ""
    if not isinstance(import_path, str):
        raise ModelError("package: import_path must be a string")
    dot_imports = obj.get("dot_imports") or []
    if not isinstance(dot_imports, list) or not all(isinstance(x, str) for x in dot_imports):
        raise ModelError("package: dot_imports must be a list of strings")
    raw_ifaces = obj.get("interfaces") or []
    if not isinstance(raw_ifaces, list):
        raise ModelError("package: interfaces must be a list")

    interfaces: list[Interface] = []
    for i, raw in enumerate(raw_ifaces):
        where = f"interfaces[{i}]"
        if not isinstance(raw, dict):
            raise ModelError(f"{where}: expected object")
        iname = _req_str(raw, "name", where)
        interfaces.append(Interface(name=iname, methods=_methods_from(raw.get("methods"), f"{iname}")))
    return Package(
        name=name,
        interfaces=interfaces,
        dot_imports=list(dot_imports),
        import_path=import_path,
    )


def _methods_from(raw: Any, where: str) -> list[Method]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ModelError(f"{where}: methods must be a list")
    out: list[Method] = []
    for m in raw:
        if not isinstance(m, dict):
            raise ModelError(f"{where}: method must be an object")
        name = _req_str(m, "name", where)
        mwhere = f"{where}.{name}"
        params, variadic, results = _signature_from(m, mwhere)
        out.append(Method(name=name, params=params, variadic=variadic, results=results))
    return out


def _signature_from(obj: dict[str, Any], where: str):
    params = _params_from(obj.get("params"), f"{where} params")
    results = _params_from(obj.get("results"), f"{where} results")
    variadic = None
    if obj.get("variadic") is not None:
        variadic = _param_from(obj["variadic"], f"{where} variadic")
    return params, variadic, results


def _params_from(raw: Any, where: str) -> list[Parameter]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ModelError(f"{where}: expected list")
    return [_param_from(p, f"{where}[{i}]") for i, p in enumerate(raw)]


def _param_from(raw: Any, where: str) -> Parameter:
    if not isinstance(raw, dict):
        raise ModelError(f"{where}: expected object")
    name = raw.get("name") or ""
    if not isinstance(name, str):
        raise ModelError(f"{where}: name must be a string")
    if "type" not in raw:
        raise ModelError(f"{where}: missing type")
    return Parameter(name=name, type=type_from_dict(raw["type"], where))


def type_from_dict(obj: Any, where: str = "type") -> Type:
    if not isinstance(obj, dict):
        raise ModelError(f"{where}: expected type object")
    kind = obj.get("kind")
    if kind == "predeclared":
        return PredeclaredType(name=_req_str(obj, "name", where))
    if kind == "named":
        pkg = obj.get("package") or ""
        if not isinstance(pkg, str):
            raise ModelError(f"{where}: package must be a string")
        return NamedType(package=pkg, name=_req_str(obj, "name", where))
    if kind == "pointer":
        return PointerType(elem=_elem(obj, where))
    if kind == "array":
        length = obj.get("len", -1)
        if not isinstance(length, int) or isinstance(length, bool):
            raise ModelError(f"{where}: len must be an int")
        return ArrayType(elem=_elem(obj, where), length=length)
    if kind == "map":
        if "key" not in obj or "value" not in obj:
            raise ModelError(f"{where}: map needs key and value")
        return MapType(
            key=type_from_dict(obj["key"], f"{where} key"),
            value=type_from_dict(obj["value"], f"{where} value"),
        )
    if kind == "chan":
        d = obj.get("dir", 0)
        if d not in (0, CHAN_RECV, CHAN_SEND):
            raise ModelError(f"{where}: invalid chan dir {d!r}")
        return ChanType(elem=_elem(obj, where), dir=d)
    if kind == "func":
        params, variadic, results = _signature_from(obj, where)
        return FuncType(params=params, variadic=variadic, results=results)
    if kind == "interface":
        return InterfaceType(methods=_methods_from(obj.get("methods"), where))
    if kind == "struct":
        return StructType(fields=_params_from(obj.get("fields"), f"{where} fields"))
    raise ModelError(f"{where}: unknown type kind {kind!r}")


def _elem(obj: dict[str, Any], where: str) -> Type:
    if "elem" not in obj:
        raise ModelError(f"{where}: missing elem")
    return type_from_dict(obj["elem"], f"{where} elem")


def _req_str(obj: dict[str, Any], key: str, where: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str) or not v:
        raise ModelError(f"{where}: missing or invalid {key!r}")
    return v


def package_to_dict(pkg: Package) -> dict[str, Any]:
    return {
        "name": pkg.name,
        "import_path": pkg.import_path,
        "dot_imports": list(pkg.dot_imports),
        "interfaces": [
            {"name": i.name, "methods": [_method_to_dict(m) for m in i.methods]}
            for i in pkg.interfaces
        ],
    }


def _method_to_dict(m: Method) -> dict[str, Any]:
    return {"name": m.name, **_signature_to_dict(m.params, m.variadic, m.results)}


def _signature_to_dict(
    params: list[Parameter], variadic: Parameter | None, results: list[Parameter]
) -> dict[str, Any]:
    return {
        "params": [_param_to_dict(p) for p in params],
        "variadic": None if variadic is None else _param_to_dict(variadic),
        "results": [_param_to_dict(p) for p in results],
    }


def _param_to_dict(p: Parameter) -> dict[str, Any]:
    return {"name": p.name, "type": type_to_dict(p.type)}


def type_to_dict(t: Type) -> dict[str, Any]:
    if isinstance(t, PredeclaredType):
        return {"kind": "predeclared", "name": t.name}
    if isinstance(t, NamedType):
        return {"kind": "named", "package": t.package, "name": t.name}
    if isinstance(t, PointerType):
        return {"kind": "pointer", "elem": type_to_dict(t.elem)}
    if isinstance(t, ArrayType):
        return {"kind": "array", "len": t.length, "elem": type_to_dict(t.elem)}
    if isinstance(t, MapType):
        return {"kind": "map", "key": type_to_dict(t.key), "value": type_to_dict(t.value)}
    if isinstance(t, ChanType):
        return {"kind": "chan", "dir": t.dir, "elem": type_to_dict(t.elem)}
    if isinstance(t, FuncType):
        return {"kind": "func", **_signature_to_dict(t.params, t.variadic, t.results)}
    if isinstance(t, InterfaceType):
        return {"kind": "interface", "methods": [_method_to_dict(m) for m in t.methods]}
    if isinstance(t, StructType):
        return {"kind": "struct", "fields": [_param_to_dict(p) for p in t.fields]}
    raise TypeError(f"not a model type: {t!r}")


def format_package(pkg: Package) -> str:
    """Human-readable dump of a model, for debugging the scanner."""
    # Full import paths keep the dump independent of alias assignment.
    pm = {p: p for p in pkg.imports()}
    lines = [f"package {pkg.name}"]
    for path in pkg.dot_imports:
        lines.append(f'  import . "{path}"')
    for iface in pkg.interfaces:
        lines.append(f"  interface {iface.name}")
        for m in iface.methods:
            lines.append(f"    method {m.name}")
            for p in m.params:
                lines.append(f"      in: {p.name or '_'} {render_type(p.type, pm)}")
            if m.variadic is not None:
                lines.append(f"      ...: {m.variadic.name or '_'} {render_type(m.variadic.type, pm)}")
            for p in m.results:
                lines.append(f"      out: {render_type(p.type, pm)}")
    return "\n".join(lines) + "\n"
