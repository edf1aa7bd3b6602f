from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Mapping

from .config import RuntimeSupport, default_runtime_support
from .errors import RenderError
from .gofmt import format_source
from .imports import resolve_aliases
from .model import Interface, Method, Package
from .signature import Signature, build_signature, free_name

logger = logging.getLogger(__name__)

HEADER = "// Code generated by gomockgen. DO NOT EDIT."

Formatter = Callable[[str], bytes]


class SourceBuffer:
    """Append-only lines of Go source with a current indentation depth."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._depth = 0

    def p(self, line: str = "") -> "SourceBuffer":
        self._lines.append("\t" * self._depth + line if line else "")
        return self

    def indent(self) -> "SourceBuffer":
        self._depth += 1
        return self

    def dedent(self) -> "SourceBuffer":
        if self._depth > 0:
            self._depth -= 1
        return self

    def text(self) -> str:
        return "\n".join(self._lines) + "\n"


def mock_name(interface_name: str) -> str:
    return "Mock" + interface_name


def verifier_name(interface_name: str) -> str:
    return "Verifier" + interface_name


class MockGenerator:
    """Renders mocks and verifiers for every interface of one `Package`.

    A generator is good for a single pass: call `generate` once, then `output`.
    """

    def __init__(self, *, runtime: RuntimeSupport | None = None):
        self.runtime = runtime or default_runtime_support()
        self.buf = SourceBuffer()
        self.package_map: Mapping[str, str] = MappingProxyType({})
        self._self_package = ""
        self._generated = False

    def _rt(self, name: str) -> str:
        """Qualify an identifier of the runtime-support package."""
        if self.runtime.import_path == self._self_package:
            return name
        return f"{self.package_map[self.runtime.import_path]}.{name}"

    def generate(self, pkg: Package, *, source: str, package_name: str, self_package: str = "") -> None:
        if self._generated:
            raise RenderError("generator already used; create a new one per pass")
        self._generated = True
        self._self_package = self_package
        try:
            self._generate(pkg, source=source, package_name=package_name)
        except (KeyError, TypeError) as e:
            raise RenderError(f"failed rendering mock for {source}: {e}") from e

    def _generate(self, pkg: Package, *, source: str, package_name: str) -> None:
        g = self.buf
        g.p(HEADER)
        g.p(f"// Source: {source}")
        g.p()

        imports = pkg.imports()
        imports.add(self.runtime.import_path)
        self.package_map = MappingProxyType(resolve_aliases(imports))

        g.p(f"package {package_name}")
        g.p()
        g.p("import (")
        g.indent()
        for path in sorted(self.package_map):
            if path == self._self_package:
                continue
            g.p(f'{self.package_map[path]} "{path}"')
        for path in pkg.dot_imports:
            g.p(f'. "{path}"')
        g.dedent()
        g.p(")")

        for iface in pkg.interfaces:
            logger.debug("generating mock for %s", iface.name)
            self.emit_interface(iface)
            self.emit_verifier(iface.name, iface.methods)

    def signature(self, method: Method) -> Signature:
        # The body refers to packages by alias; parameters must not shadow them.
        reserved = {a for p, a in self.package_map.items() if p != self._self_package}
        return build_signature(method, dict(self.package_map), self._self_package, reserved)

    def _locals(self, sig: Signature, *wanted: str) -> dict[str, str]:
        """Pick names for generated receivers and locals that no parameter or alias uses."""
        taken = set(sig.param_names) | set(self.package_map.values())
        out: dict[str, str] = {}
        for w in wanted:
            out[w] = free_name(w, taken)
            taken.add(out[w])
        return out

    def emit_interface(self, iface: Interface) -> None:
        g = self.buf
        mock_type = mock_name(iface.name)

        g.p()
        g.p(f"// {mock_type} is a mock of the {iface.name} interface.")
        g.p(f"type {mock_type} struct {{")
        g.indent().p("fail func(message string, callerSkip ...int)").dedent()
        g.p("}")
        g.p()
        g.p(f"func New{mock_type}() *{mock_type} {{")
        g.indent().p(f"return &{mock_type}{{fail: {self._rt(self.runtime.fail_handler)}}}").dedent()
        g.p("}")

        for method in iface.methods:
            g.p()
            self.emit_mock_method(mock_type, method)

    def emit_mock_method(self, mock_type: str, method: Method) -> None:
        g = self.buf
        sig = self.signature(method)
        rets = [f"ret{i}" for i in range(len(sig.return_types))]
        names = self._locals(sig, "mock", "result", "_params", "_param", *rets)
        recv = names["mock"]
        result = names["result"]

        g.p(f"func ({recv} *{mock_type}) {method.name}({sig.param_list}){sig.return_list} {{")
        g.indent()
        args = self._forwarded_args(sig, names)
        call = f'{self._rt(self.runtime.mock_accessor)}({recv}).Invoke("{method.name}"{args})'
        if not sig.return_types:
            g.p(call)
        else:
            g.p(f"{result} := {call}")
            g.p(f"if len({result}) == 0 {{")
            g.indent()
            self._zero_returns(sig.return_types, [names[r] for r in rets])
            g.dedent()
            g.p("}")
            casts = [f"{result}[{i}].({t})" for i, t in enumerate(sig.return_types)]
            g.p("return " + ", ".join(casts))
        g.dedent()
        g.p("}")

    def emit_verifier(self, interface_name: str, methods: list[Method]) -> None:
        g = self.buf
        mock_type = mock_name(interface_name)
        verifier = verifier_name(interface_name)
        matcher = self._rt(self.runtime.matcher)
        in_order = f"*{self._rt(self.runtime.in_order_context)}"

        g.p()
        g.p(f"type {verifier} struct {{")
        g.indent()
        g.p(f"mock *{mock_type}")
        g.p(f"invocationCountMatcher {matcher}")
        g.p(f"inOrderContext {in_order}")
        g.dedent()
        g.p("}")
        g.p()
        g.p(f"func (mock *{mock_type}) VerifyWasCalledOnce() *{verifier} {{")
        g.indent().p(f"return &{verifier}{{mock, {self._rt(self.runtime.times)}(1), nil}}").dedent()
        g.p("}")
        g.p()
        g.p(f"func (mock *{mock_type}) VerifyWasCalled(invocationCountMatcher {matcher}) *{verifier} {{")
        g.indent().p(f"return &{verifier}{{mock, invocationCountMatcher, nil}}").dedent()
        g.p("}")
        g.p()
        g.p(
            f"func (mock *{mock_type}) VerifyWasCalledInOrder("
            f"invocationCountMatcher {matcher}, inOrderContext {in_order}) *{verifier} {{"
        )
        g.indent().p(f"return &{verifier}{{mock, invocationCountMatcher, inOrderContext}}").dedent()
        g.p("}")

        for method in methods:
            g.p()
            self.emit_verifier_method(verifier, method)

    def emit_verifier_method(self, verifier: str, method: Method) -> None:
        g = self.buf
        sig = self.signature(method)
        rets = [f"ret{i}" for i in range(len(sig.return_types))]
        names = self._locals(sig, "verifier", "_params", "_param", *rets)
        recv = names["verifier"]

        g.p(f"func ({recv} *{verifier}) {method.name}({sig.param_list}){sig.return_list} {{")
        g.indent()
        args = self._forwarded_args(sig, names)
        g.p(
            f"{self._rt(self.runtime.mock_accessor)}({recv}.mock).Verify("
            f'{recv}.inOrderContext, {recv}.invocationCountMatcher, "{method.name}"{args})'
        )
        if sig.return_types:
            self._zero_returns(sig.return_types, [names[r] for r in rets])
        g.dedent()
        g.p("}")

    def _forwarded_args(self, sig: Signature, names: dict[str, str]) -> str:
        """Emit any setup the call needs and return the text after the method name."""
        if sig.variadic_name is None:
            return f", {sig.call_args}" if sig.call_args else ""
        g = self.buf
        params, param = names["_params"], names["_param"]
        g.p(f"{params} := []{self._rt(self.runtime.param)}{{{', '.join(sig.fixed_param_names)}}}")
        g.p(f"for _, {param} := range {sig.variadic_name} {{")
        g.indent().p(f"{params} = append({params}, {param})").dedent()
        g.p("}")
        return f", {params}..."

    def _zero_returns(self, return_types: list[str], names: list[str]) -> None:
        for name, t in zip(names, return_types):
            self.buf.p(f"var {name} {t}")
        self.buf.p("return " + ", ".join(names))

    def output(self, formatter: Formatter | None = format_source) -> bytes:
        """Return the generated file, formatted unless `formatter` is None."""
        src = self.buf.text()
        if formatter is None:
            return src.encode("utf-8")
        return formatter(src)


def generate_mock_source(
    pkg: Package,
    *,
    source: str,
    package_name: str,
    self_package: str = "",
    runtime: RuntimeSupport | None = None,
    formatter: Formatter | None = format_source,
) -> bytes:
    """Generate the mock file for every interface in `pkg`.

    `source` names where the model came from and ends up in the file header.
    Types of `self_package` are written unqualified and it is not imported.
    """
    g = MockGenerator(runtime=runtime)
    g.generate(pkg, source=source, package_name=package_name, self_package=self_package)
    return g.output(formatter)
