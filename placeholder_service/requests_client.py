from __future__ import annotations

import argparse
import hashlib
import json
import mimetypes
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import requests


DEFAULT_BASE_URL = os.getenv("PLACEHOLDER_BASE_URL", "http://127.0.0.1:8080")


def _image_params(
    bg: str | None = None,
    fg: str | None = None,
    br: str | None = None,
    br_s: int | None = None,
    text: str | None = None,
    fmt: str | None = None,
) -> dict:
    params: dict = {}
    for name, value in (("bg", bg), ("fg", fg), ("br", br), ("text", text), ("format", fmt)):
        if value:
            params[name] = value
    if br_s is not None:
        params["br_s"] = str(int(br_s))
    return params


def _default_out_path(dimensions: str, content_type: str) -> Path:
    suffix = mimetypes.guess_extension(content_type.split(";")[0].strip()) or ".bin"
    return Path(f"{dimensions}{suffix}")


def request_health(base_url: str) -> dict:
    resp = requests.get(f"{base_url}/v1/health", timeout=10)
    resp.raise_for_status()
    return resp.json()


def request_stats(base_url: str) -> dict:
    resp = requests.get(f"{base_url}/v1/stats", timeout=10)
    resp.raise_for_status()
    return resp.json()


def request_image(
    base_url: str,
    dimensions: str,
    params: dict | None = None,
    out_path: Path | None = None,
) -> dict:
    started = time.perf_counter()
    resp = requests.get(f"{base_url}/{dimensions}", params=params or {}, timeout=60)
    resp.raise_for_status()
    elapsed_ms = (time.perf_counter() - started) * 1000.0
    content_type = resp.headers.get("Content-Type", "application/octet-stream")
    path = out_path or _default_out_path(dimensions, content_type)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(resp.content)
    return {
        "path": str(path),
        "content_type": content_type,
        "bytes": len(resp.content),
        "etag": resp.headers.get("ETag"),
        "ms": round(elapsed_ms, 2),
    }


def request_burst(
    base_url: str,
    dimensions: str,
    params: dict | None = None,
    count: int = 50,
) -> dict:
    """Fire ``count`` identical requests at once and summarize the bodies."""

    def _fetch(_: int) -> tuple[int, str]:
        resp = requests.get(f"{base_url}/{dimensions}", params=params or {}, timeout=120)
        return resp.status_code, hashlib.sha256(resp.content).hexdigest()

    started = time.perf_counter()
    with ThreadPoolExecutor(max_workers=max(1, count)) as pool:
        results = list(pool.map(_fetch, range(count)))
    statuses: dict[str, int] = {}
    for status, _digest in results:
        statuses[str(status)] = statuses.get(str(status), 0) + 1
    return {
        "requests": count,
        "statuses": statuses,
        "distinct_bodies": len({digest for _status, digest in results}),
        "ms": round((time.perf_counter() - started) * 1000.0, 2),
    }


def _add_image_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("dimensions", help="e.g. 450x450")
    parser.add_argument("--bg")
    parser.add_argument("--fg")
    parser.add_argument("--br")
    parser.add_argument("--br-s", type=int)
    parser.add_argument("--text")
    parser.add_argument("--format", choices=["png", "jpeg", "webp", "gif"])


def main() -> None:
    parser = argparse.ArgumentParser(description="Placeholder service client (requests)")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL)
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("health", help="Call /v1/health")
    subparsers.add_parser("stats", help="Call /v1/stats")

    fetch_parser = subparsers.add_parser("fetch", help="Download one placeholder image")
    _add_image_args(fetch_parser)
    fetch_parser.add_argument("--out", help="Output file; derived from dimensions by default")

    burst_parser = subparsers.add_parser("burst", help="Send identical requests concurrently")
    _add_image_args(burst_parser)
    burst_parser.add_argument("--count", type=int, default=50)

    args = parser.parse_args()

    base_url = args.base_url.rstrip("/")
    if args.command == "health":
        payload = request_health(base_url)
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    if args.command == "stats":
        payload = request_stats(base_url)
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    params = _image_params(
        bg=args.bg, fg=args.fg, br=args.br, br_s=args.br_s, text=args.text, fmt=args.format
    )
    if args.command == "fetch":
        payload = request_image(
            base_url,
            args.dimensions,
            params=params,
            out_path=Path(args.out) if args.out else None,
        )
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    if args.command == "burst":
        payload = request_burst(base_url, args.dimensions, params=params, count=args.count)
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return


if __name__ == "__main__":
    main()
