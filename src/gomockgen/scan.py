from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any

from .errors import ScanError
from .model import Package, package_from_dict

logger = logging.getLogger(__name__)


def scan_source(path: str | Path, *, import_path: str | None = None) -> Package:
    """Build a model of every interface declared in one Go source file.

    Local named types are qualified with `import_path` when given, otherwise
    they are left unqualified (for mocks generated into the same package).
    In a file with dot imports, a name the file does not declare is assumed to
    come from a dot-imported package and is always left unqualified.
    """
    path = Path(path).resolve()
    if not path.is_file():
        raise ScanError(f"source file not found: {path}")
    args = ["--file", str(path)]
    if import_path:
        args += ["--import-path", import_path]
    return package_from_dict(_run_scanner(args))


def scan_package(import_path: str, interface_names: list[str], *, cwd: Path | None = None) -> Package:
    """Build a model of the named interfaces of a Go package.

    The package is located with `go list`, run from `cwd` (default: the current
    directory), so module-relative import paths resolve as they do for `go build`.
    """
    names = [n.strip() for n in interface_names if n.strip()]
    if not names:
        raise ScanError("at least one interface name is required")
    args = [
        "--package",
        import_path,
        "--interfaces",
        ",".join(names),
        "--dir",
        str(Path(cwd or os.getcwd()).resolve()),
    ]
    return package_from_dict(_run_scanner(args))


def package_source(import_path: str, interface_names: list[str]) -> str:
    """Provenance line for mocks generated in package mode."""
    return f"{import_path} (interfaces: {','.join(interface_names)})"


def _run_scanner(args: list[str]) -> dict[str, Any]:
    with tempfile.TemporaryDirectory(prefix="gomockgen-scan-") as td:
        scan_dir = Path(td)
        (scan_dir / "go.mod").write_text(
            "\n".join(
                [
                    "module gomockgen.scan",
                    "",
                    "go 1.18",
                    "",
                ]
            ),
            encoding="utf-8",
        )
        (scan_dir / "main.go").write_text(_scanner_go_source(), encoding="utf-8")

        cmd = ["go", "run", ".", *args]
        logger.debug("running %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(scan_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except FileNotFoundError as e:
            raise ScanError(
                "Go toolchain not found (`go` is missing from PATH). "
                "Install Go, or load a previously dumped model with --model."
            ) from e

        if proc.returncode != 0:
            raise ScanError(f"go scan failed\n{proc.stderr}{proc.stdout}")

        try:
            obj = json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise ScanError(f"failed to parse go scan output: {e}\n{proc.stdout}") from e
        if not isinstance(obj, dict):
            raise ScanError("go scan output is not an object")
        return obj


def _scanner_go_source() -> str:
    # Keep this file stdlib-only so `go run` doesn't need network access.
    return r'''
package main

import (
	"bytes"
	"encoding/json"
	"flag"
	"fmt"
	"go/ast"
	"go/parser"
	"go/token"
	"os"
	"os/exec"
	"path"
	"path/filepath"
	"strconv"
	"strings"
)

type outType map[string]interface{}

type outParam struct {
	Name string  `json:"name"`
	Type outType `json:"type"`
}

type outMethod struct {
	Name     string     `json:"name"`
	Params   []outParam `json:"params"`
	Variadic *outParam  `json:"variadic"`
	Results  []outParam `json:"results"`
}

type outInterface struct {
	Name    string      `json:"name"`
	Methods []outMethod `json:"methods"`
}

type outPackage struct {
	Name       string         `json:"name"`
	ImportPath string         `json:"import_path"`
	DotImports []string       `json:"dot_imports"`
	Interfaces []outInterface `json:"interfaces"`
}

var predeclared = map[string]bool{
	"any": true, "bool": true, "byte": true, "complex64": true, "complex128": true,
	"error": true, "float32": true, "float64": true, "int": true, "int8": true,
	"int16": true, "int32": true, "int64": true, "rune": true, "string": true,
	"uint": true, "uint8": true, "uint16": true, "uint32": true, "uint64": true,
	"uintptr": true,
}

func fail(format string, args ...interface{}) {
	fmt.Fprintf(os.Stderr, format+"\n", args...)
	os.Exit(1)
}

func main() {
	var file, pkgPath, names, localPkg, dir string
	flag.StringVar(&file, "file", "", "Go source file (source mode)")
	flag.StringVar(&localPkg, "import-path", "", "import path of the source file's package")
	flag.StringVar(&pkgPath, "package", "", "import path of the package (package mode)")
	flag.StringVar(&names, "interfaces", "", "comma-separated interface names (package mode)")
	flag.StringVar(&dir, "dir", "", "directory to run go list from")
	flag.Parse()

	var out outPackage
	switch {
	case file != "":
		out = scanFile(file, localPkg)
	case pkgPath != "":
		out = scanPackage(pkgPath, strings.Split(names, ","), dir)
	default:
		fail("one of --file or --package is required")
	}

	enc := json.NewEncoder(os.Stdout)
	enc.SetEscapeHTML(false)
	if err := enc.Encode(out); err != nil {
		fail("encode: %v", err)
	}
}

func parseFile(fs *token.FileSet, file string) *ast.File {
	af, err := parser.ParseFile(fs, file, nil, 0)
	if err != nil {
		fail("parse %s: %v", file, err)
	}
	return af
}

func scanFile(file string, localPkg string) outPackage {
	af := parseFile(token.NewFileSet(), file)
	sc := newScope(af, localPkg, declaredTypes(af, map[string]bool{}))
	out := outPackage{
		Name:       af.Name.Name,
		ImportPath: localPkg,
		DotImports: sc.dotImports,
		Interfaces: []outInterface{},
	}
	for _, name := range sc.order {
		out.Interfaces = append(out.Interfaces, sc.interfaceOf(name))
	}
	return out
}

type goListPkg struct {
	Name       string
	ImportPath string
	Dir        string
	GoFiles    []string
}

func scanPackage(pkgPath string, names []string, dir string) outPackage {
	if dir != "" {
		if err := os.Chdir(dir); err != nil {
			fail("chdir: %v", err)
		}
	}
	cmd := exec.Command("go", "list", "-json", pkgPath)
	var stdout, stderr bytes.Buffer
	cmd.Stdout = &stdout
	cmd.Stderr = &stderr
	if err := cmd.Run(); err != nil {
		fail("go list %s failed: %v\n%s", pkgPath, err, stderr.String())
	}
	var p goListPkg
	if err := json.Unmarshal(stdout.Bytes(), &p); err != nil {
		fail("failed to decode go list json: %v", err)
	}

	wanted := map[string]bool{}
	for _, n := range names {
		wanted[strings.TrimSpace(n)] = true
	}
	found := map[string]outInterface{}
	dots := []string{}
	seenDots := map[string]bool{}
	fs := token.NewFileSet()
	files := make([]*ast.File, 0, len(p.GoFiles))
	local := map[string]bool{}
	for _, fn := range p.GoFiles {
		af := parseFile(fs, filepath.Join(p.Dir, fn))
		declaredTypes(af, local)
		files = append(files, af)
	}
	for _, af := range files {
		sc := newScope(af, p.ImportPath, local)
		hit := false
		for _, name := range sc.order {
			if wanted[name] {
				found[name] = sc.interfaceOf(name)
				hit = true
			}
		}
		if hit {
			for _, d := range sc.dotImports {
				if !seenDots[d] {
					seenDots[d] = true
					dots = append(dots, d)
				}
			}
		}
	}

	out := outPackage{Name: p.Name, ImportPath: p.ImportPath, DotImports: dots, Interfaces: []outInterface{}}
	for _, n := range names {
		n = strings.TrimSpace(n)
		iface, ok := found[n]
		if !ok {
			fail("interface %s not found in package %s", n, pkgPath)
		}
		out.Interfaces = append(out.Interfaces, iface)
	}
	return out
}

type scope struct {
	localPkg   string
	localTypes map[string]bool
	imports    map[string]string
	dotImports []string
	ifaces     map[string]*ast.InterfaceType
	order      []string
}

// declaredTypes adds the names of the types declared in af to into.
func declaredTypes(af *ast.File, into map[string]bool) map[string]bool {
	for _, decl := range af.Decls {
		gd, ok := decl.(*ast.GenDecl)
		if !ok || gd.Tok != token.TYPE {
			continue
		}
		for _, spec := range gd.Specs {
			if ts, ok := spec.(*ast.TypeSpec); ok && ts.Name != nil {
				into[ts.Name.Name] = true
			}
		}
	}
	return into
}

func newScope(af *ast.File, localPkg string, localTypes map[string]bool) *scope {
	sc := &scope{
		localPkg:   localPkg,
		localTypes: localTypes,
		imports:    map[string]string{},
		dotImports: []string{},
		ifaces:     map[string]*ast.InterfaceType{},
	}
	for _, is := range af.Imports {
		p, err := strconv.Unquote(is.Path.Value)
		if err != nil {
			fail("bad import path %s", is.Path.Value)
		}
		// Without type checking, the base of the path stands in for the package name.
		name := path.Base(p)
		if is.Name != nil {
			name = is.Name.Name
		}
		switch name {
		case ".":
			sc.dotImports = append(sc.dotImports, p)
		case "_":
		default:
			sc.imports[name] = p
		}
	}
	for _, decl := range af.Decls {
		gd, ok := decl.(*ast.GenDecl)
		if !ok || gd.Tok != token.TYPE {
			continue
		}
		for _, spec := range gd.Specs {
			ts, ok := spec.(*ast.TypeSpec)
			if !ok || ts.Name == nil {
				continue
			}
			it, ok := ts.Type.(*ast.InterfaceType)
			if !ok {
				continue
			}
			// Generic interfaces cannot be mocked with a plain struct.
			if ts.TypeParams != nil && len(ts.TypeParams.List) > 0 {
				continue
			}
			sc.ifaces[ts.Name.Name] = it
			sc.order = append(sc.order, ts.Name.Name)
		}
	}
	return sc
}

func (sc *scope) interfaceOf(name string) outInterface {
	return outInterface{Name: name, Methods: sc.methodsOf(name, sc.ifaces[name], true)}
}

func (sc *scope) methodsOf(name string, it *ast.InterfaceType, allowEmbed bool) []outMethod {
	methods := []outMethod{}
	if it.Methods == nil {
		return methods
	}
	for _, f := range it.Methods.List {
		if ft, ok := f.Type.(*ast.FuncType); ok && len(f.Names) > 0 {
			for _, n := range f.Names {
				methods = append(methods, sc.method(n.Name, ft))
			}
			continue
		}
		switch e := f.Type.(type) {
		case *ast.Ident:
			if e.Name == "error" {
				methods = append(methods, outMethod{
					Name:    "Error",
					Params:  []outParam{},
					Results: []outParam{{Type: outType{"kind": "predeclared", "name": "string"}}},
				})
				continue
			}
			inner, ok := sc.ifaces[e.Name]
			if !ok {
				fail("%s: embedded interface %s is not declared in the same file", name, e.Name)
			}
			if !allowEmbed {
				fail("%s: recursively embedded interfaces are not supported", name)
			}
			methods = append(methods, sc.methodsOf(e.Name, inner, false)...)
		case *ast.SelectorExpr:
			fail("%s: embedding interfaces from other packages is not supported", name)
		default:
			fail("%s: unsupported interface element %T", name, f.Type)
		}
	}
	return methods
}

func (sc *scope) method(name string, ft *ast.FuncType) outMethod {
	params, variadic, results := sc.signature(ft)
	return outMethod{Name: name, Params: params, Variadic: variadic, Results: results}
}

func (sc *scope) signature(ft *ast.FuncType) ([]outParam, *outParam, []outParam) {
	params := []outParam{}
	var variadic *outParam
	if ft.Params != nil {
		for _, f := range ft.Params.List {
			if el, ok := f.Type.(*ast.Ellipsis); ok {
				p := outParam{Type: sc.typeOf(el.Elt)}
				if len(f.Names) > 0 && f.Names[0].Name != "_" {
					p.Name = f.Names[0].Name
				}
				variadic = &p
				continue
			}
			params = append(params, sc.fieldParams(f)...)
		}
	}
	results := []outParam{}
	if ft.Results != nil {
		for _, f := range ft.Results.List {
			results = append(results, sc.fieldParams(f)...)
		}
	}
	return params, variadic, results
}

func (sc *scope) fieldParams(f *ast.Field) []outParam {
	t := sc.typeOf(f.Type)
	if len(f.Names) == 0 {
		return []outParam{{Type: t}}
	}
	out := make([]outParam, 0, len(f.Names))
	for _, n := range f.Names {
		name := n.Name
		// Blank parameters cannot be forwarded; let the generator name them.
		if name == "_" {
			name = ""
		}
		out = append(out, outParam{Name: name, Type: t})
	}
	return out
}

func (sc *scope) typeOf(e ast.Expr) outType {
	switch t := e.(type) {
	case *ast.Ident:
		if predeclared[t.Name] {
			return outType{"kind": "predeclared", "name": t.Name}
		}
		// Without type checking, an undeclared name in a file with dot imports
		// is assumed to come from one of them and is left unqualified.
		if len(sc.dotImports) > 0 && !sc.localTypes[t.Name] {
			return outType{"kind": "named", "package": "", "name": t.Name}
		}
		return outType{"kind": "named", "package": sc.localPkg, "name": t.Name}
	case *ast.SelectorExpr:
		x, ok := t.X.(*ast.Ident)
		if !ok {
			fail("unsupported qualified type %T", t.X)
		}
		p, ok := sc.imports[x.Name]
		if !ok {
			fail("unknown package %s in type %s.%s", x.Name, x.Name, t.Sel.Name)
		}
		return outType{"kind": "named", "package": p, "name": t.Sel.Name}
	case *ast.StarExpr:
		return outType{"kind": "pointer", "elem": sc.typeOf(t.X)}
	case *ast.ParenExpr:
		return sc.typeOf(t.X)
	case *ast.ArrayType:
		n := -1
		if t.Len != nil {
			lit, ok := t.Len.(*ast.BasicLit)
			if !ok || lit.Kind != token.INT {
				fail("unsupported array length expression")
			}
			v, err := strconv.Atoi(lit.Value)
			if err != nil {
				fail("bad array length %s", lit.Value)
			}
			n = v
		}
		return outType{"kind": "array", "len": n, "elem": sc.typeOf(t.Elt)}
	case *ast.MapType:
		return outType{"kind": "map", "key": sc.typeOf(t.Key), "value": sc.typeOf(t.Value)}
	case *ast.ChanType:
		dir := 0
		switch t.Dir {
		case ast.RECV:
			dir = 1
		case ast.SEND:
			dir = 2
		}
		return outType{"kind": "chan", "dir": dir, "elem": sc.typeOf(t.Value)}
	case *ast.FuncType:
		params, variadic, results := sc.signature(t)
		return outType{"kind": "func", "params": params, "variadic": variadic, "results": results}
	case *ast.InterfaceType:
		methods := []outMethod{}
		if t.Methods != nil {
			for _, f := range t.Methods.List {
				ft, ok := f.Type.(*ast.FuncType)
				if !ok || len(f.Names) == 0 {
					fail("embedded interfaces in interface literals are not supported")
				}
				for _, n := range f.Names {
					methods = append(methods, sc.method(n.Name, ft))
				}
			}
		}
		return outType{"kind": "interface", "methods": methods}
	case *ast.StructType:
		fields := []outParam{}
		if t.Fields != nil {
			for _, f := range t.Fields.List {
				ft := sc.typeOf(f.Type)
				if len(f.Names) == 0 {
					fields = append(fields, outParam{Type: ft})
					continue
				}
				for _, n := range f.Names {
					fields = append(fields, outParam{Name: n.Name, Type: ft})
				}
			}
		}
		return outType{"kind": "struct", "fields": fields}
	default:
		fail("unsupported type expression %T", e)
	}
	return nil
}
'''
