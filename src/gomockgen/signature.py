from __future__ import annotations

from dataclasses import dataclass
from typing import Collection

from .model import Method, render_type


@dataclass(frozen=True)
class Signature:
    params: list[str]  # "name type", variadic last as "name ...elem"
    param_names: list[str]
    param_list: str
    return_types: list[str]
    return_list: str  # "", " T" or " (A, B)"
    call_args: str
    variadic_name: str | None = None

    @property
    def fixed_param_names(self) -> list[str]:
        if self.variadic_name is None:
            return list(self.param_names)
        return self.param_names[:-1]


def free_name(base: str, taken: Collection[str]) -> str:
    """Return `base`, with `_` appended until it is not in `taken`."""
    name = base
    while name in taken:
        name += "_"
    return name


def build_signature(
    method: Method,
    package_map: dict[str, str],
    pkg_override: str = "",
    reserved: Collection[str] = (),
) -> Signature:
    """Derive the Go parameter list, return clause and forwarded names of a method.

    Unnamed parameters are called `_param<N>`, N being the zero-based position
    among all inputs with the variadic one counted last. Parameters named like
    one of `reserved` (import aliases the body refers to) get a `_` suffix.
    """
    raw = [p.name or f"_param{i}" for i, p in enumerate(method.params)]
    if method.variadic is not None:
        raw.append(method.variadic.name or f"_param{len(method.params)}")
    taken = set(raw) | set(reserved)
    renamed: list[str] = []
    for name in raw:
        if name in reserved:
            name = free_name(name, taken)
            taken.add(name)
        renamed.append(name)

    params: list[str] = []
    names: list[str] = []
    for i, p in enumerate(method.params):
        name = renamed[i]
        params.append(f"{name} {render_type(p.type, package_map, pkg_override)}")
        names.append(name)

    variadic_name = None
    if method.variadic is not None:
        variadic_name = renamed[-1]
        params.append(f"{variadic_name} ...{render_type(method.variadic.type, package_map, pkg_override)}")
        names.append(variadic_name)

    rets = [render_type(p.type, package_map, pkg_override) for p in method.results]
    ret_list = ", ".join(rets)
    if len(rets) > 1:
        ret_list = f"({ret_list})"
    if ret_list:
        ret_list = " " + ret_list

    return Signature(
        params=params,
        param_names=names,
        param_list=", ".join(params),
        return_types=rets,
        return_list=ret_list,
        call_args=", ".join(names),
        variadic_name=variadic_name,
    )
