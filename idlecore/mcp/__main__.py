"""CLI entry point: python -m idlecore.mcp <content.json> [seed]"""

from __future__ import annotations

import sys


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python -m idlecore.mcp <content.json> [seed]", file=sys.stderr)
        print(
            "Example: python examples/apple_orchard.py > orchard.json && "
            "python -m idlecore.mcp orchard.json",
            file=sys.stderr,
        )
        sys.exit(1)

    content_path = sys.argv[1]
    seed = int(sys.argv[2]) if len(sys.argv) > 2 else None

    # stdout carries the MCP protocol; keep load output on stderr
    real_stdout = sys.stdout
    sys.stdout = sys.stderr
    try:
        from idlecore.cli import load_content

        definition = load_content(content_path)
    finally:
        sys.stdout = real_stdout

    from idlecore.mcp.server import create_server

    server = create_server(definition, seed=seed)
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
