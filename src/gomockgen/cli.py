from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from pathlib import Path

from .errors import GoMockGenError


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="gomockgen")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version", help="Print gomockgen version.")

    p_gen = sub.add_parser("gen", help="Generate mocks and verifiers for Go interfaces.")
    src = p_gen.add_mutually_exclusive_group(required=True)
    src.add_argument("--source", default=None, help="Go source file; mocks every interface it declares.")
    src.add_argument(
        "--package",
        default=None,
        help="Go package import path (requires --interfaces).",
    )
    src.add_argument("--model", default=None, help="Model file (.json or .msgpack) from --dump-model.")
    p_gen.add_argument("--interfaces", default=None, help="Comma-separated interface names (with --package).")
    p_gen.add_argument(
        "--out",
        default=None,
        help="Output file path, or '-' for stdout (default: mock_<name>_test.go in --out-dir).",
    )
    p_gen.add_argument("--out-dir", default=".", help="Directory for the derived output file name.")
    p_gen.add_argument(
        "--package-name",
        default=None,
        help="Package clause of the generated file (default: the mocked package).",
    )
    p_gen.add_argument(
        "--self-package",
        default=None,
        help="Import path the generated file lives in; its types are not qualified or imported.",
    )
    p_gen.add_argument(
        "--import-path",
        default=None,
        help="Import path of the --source file's package, used to qualify its local types.",
    )
    p_gen.add_argument("--dump-model", default=None, help="Also write the loaded model to this file.")
    p_gen.add_argument("--debug-model", action="store_true", help="Print the loaded model to stderr.")
    p_gen.add_argument("--raw", action="store_true", help="Skip gofmt and write the unformatted source.")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "version":
        try:
            print(importlib.metadata.version("gomockgen"))
        except importlib.metadata.PackageNotFoundError:
            # Running from a source checkout.
            print("0.0.0")
        return

    if args.cmd == "gen":
        try:
            _gen(args)
        except GoMockGenError as e:
            raise SystemExit(f"gomockgen: {e}") from e
        return


def _gen(args: argparse.Namespace) -> None:
    from .generator import generate_mock_source
    from .gofmt import format_source
    from .model import format_package
    from .model_io import dump_package, load_package
    from .scan import package_source, scan_package, scan_source
    from .writer import output_file_path, write_if_changed

    names: list[str] | None = None
    if args.source:
        pkg = scan_source(args.source, import_path=args.import_path)
        source = args.source
    elif args.package:
        if not args.interfaces:
            raise SystemExit("gen --package requires --interfaces")
        names = [n.strip() for n in args.interfaces.split(",") if n.strip()]
        pkg = scan_package(args.package, names)
        source = package_source(args.package, names)
    else:
        pkg = load_package(args.model)
        source = args.model
        names = [i.name for i in pkg.interfaces]

    if args.debug_model:
        print(format_package(pkg), end="", file=sys.stderr)
    if args.dump_model:
        dump_package(pkg, args.dump_model)

    package_name = args.package_name or pkg.name
    self_package = args.self_package
    if self_package is None:
        # A mock generated into the mocked package must not import it.
        self_package = "" if args.package_name else pkg.import_path

    data = generate_mock_source(
        pkg,
        source=source,
        package_name=package_name,
        self_package=self_package,
        formatter=None if args.raw else format_source,
    )

    if args.out == "-":
        sys.stdout.write(data.decode("utf-8"))
        return
    if not args.out and not args.source and not names:
        raise SystemExit("model has no interfaces; pass --out to name the output file")

    path = output_file_path(
        out_dir=Path(args.out_dir),
        source_file=args.source,
        interface_names=names,
        override=args.out,
    )
    changed = write_if_changed(path, data)
    print(f"{'wrote' if changed else 'unchanged'}: {path}")
