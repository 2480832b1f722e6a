"""Command line entry point: ``python -m placeholder_service serve``."""

from __future__ import annotations

import argparse
from typing import List, Optional

from placeholder_service.config import load_settings


def _build_parser() -> argparse.ArgumentParser:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Placeholder image service")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)
    serve.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
    )

    clear = subparsers.add_parser("clear-cache", help="Delete every cached image")
    clear.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    return parser


def _handle_serve(args: argparse.Namespace) -> None:
    if args.port <= 0 or args.port > 65535:
        raise SystemExit("port must be between 1 and 65535")

    import uvicorn

    uvicorn.run(
        "placeholder_service.app:create_app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        factory=True,
    )


def _handle_clear_cache(args: argparse.Namespace) -> None:
    from placeholder_service.core.store import ImageStore

    settings = load_settings()
    if not args.yes:
        answer = input(f"Delete all cached images in {settings.db_path}? [y/N] ")
        if answer.strip().lower() not in {"y", "yes"}:
            print("Aborted")
            return
    removed = ImageStore(settings.db_path).clear()
    print(f"Removed {removed} cached image(s)")


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        _handle_serve(args)
    elif args.command == "clear-cache":
        _handle_clear_cache(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
