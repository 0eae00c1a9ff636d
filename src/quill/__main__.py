"""Entry point: python -m quill [chat|health]

- No args / "chat": Interactive CLI REPL
- "health":         Probe the backend and exit 0 (reachable) or 1
"""

from __future__ import annotations

import asyncio
import logging
import sys

from quill.config import QuillConfig, load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def _chat(config: QuillConfig) -> None:
    from quill.app import Quill
    from quill.connectors.cli import CLIConnector

    app = Quill(config)
    await app.run(CLIConnector())


async def _health(config: QuillConfig) -> bool:
    from quill.gateway import NotesGateway

    gateway = NotesGateway(config.backend.url)
    try:
        return await gateway.health()
    finally:
        await gateway.close()


def _run_cli() -> None:
    """Interactive CLI REPL mode."""
    config = load_config()
    _setup_logging(config.log_level)

    try:
        asyncio.run(_chat(config))
    except KeyboardInterrupt:
        pass


def _run_health() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    healthy = asyncio.run(_health(config))
    status = "reachable" if healthy else "unreachable"
    print(f"Backend {config.backend.url} is {status}.")
    sys.exit(0 if healthy else 1)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"

    if cmd in ("chat", "repl"):
        _run_cli()
    elif cmd == "health":
        _run_health()
    else:
        print("Usage: python -m quill [chat|health]")
        print("  chat    Interactive notes client (default)")
        print("  health  Check that the backend is reachable")
        sys.exit(1)


if __name__ == "__main__":
    main()
