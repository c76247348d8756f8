"""CLI entry point: run `bugsgraph model.sexpr` or `python -m bugsgraph model.sexpr`."""

import logging
import sys
from pathlib import Path


def _format_nodes(nodes) -> str:
    rows = [("node", "kind", "default", "parents")]
    for name in sorted(nodes):
        node = nodes[name]
        rows.append((name, node.kind.value, f"{node.default_value:g}", ", ".join(node.parents)))
    widths = [max(len(row[i]) for row in rows) for i in range(3)]
    lines = []
    for row in rows:
        lines.append("  ".join(cell.ljust(width) for cell, width in zip(row[:3], widths)) + "  " + row[3])
    return "\n".join(line.rstrip() for line in lines)


def main(argv=None) -> int:
    import argparse
    from .compiler.driver import CompilerDriver
    from .compiler.serialization import deserialize_tree
    from .shared.errors import BugsError
    from .utils.io_utils import read_json_file, read_source_file

    parser = argparse.ArgumentParser(prog="bugsgraph", description="Compile a BUGS model tree (.sexpr) into a node graph.")
    parser.add_argument("file", type=Path, help="Path to the model tree (.sexpr)")
    parser.add_argument("--data", type=Path, help="JSON data binding (null marks a missing cell)")
    parser.add_argument("--dump-tree", type=Path, metavar="DIR", help="Write the tree after each pass into DIR")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log compiler progress")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(name)s: %(message)s")

    path = args.file.resolve()
    if not path.is_file():
        sys.stderr.write(f"bugsgraph: error: file not found: {path}\n")
        return 1

    try:
        source = read_source_file(path)
        data = read_json_file(args.data) if args.data else {}
    except (OSError, ValueError) as e:
        sys.stderr.write(f"bugsgraph: error: could not read input: {e}\n")
        return 1
    if not isinstance(data, dict):
        sys.stderr.write("bugsgraph: error: data must be a JSON object\n")
        return 1

    try:
        program = deserialize_tree(source, file=str(path))
    except BugsError as e:
        sys.stderr.write(f"{e}\n")
        return 1

    result = CompilerDriver().compile(program, data, source_files={str(path): source}, dump_dir=args.dump_tree)
    if not result.success:
        sys.stderr.write(result.state.reporter.format_all_errors() + "\n")
        return 1

    print(_format_nodes(result.nodes))
    return 0


if __name__ == "__main__":
    sys.exit(main())
