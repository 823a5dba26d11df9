#!/usr/bin/env python3
"""
Inspect the offline cache of a running gateway.

Checks performed:
- HTTP 200 and JSON object keyed by partition name
- Each entry carries key, status, size and a parseable cached_at timestamp
- Only 2xx responses are stored
- Runtime partition holds no /api/ entries and no non-GET keys

Prints every entry with its age.

Usage examples:
  python scripts/inspect_cache.py
  python scripts/inspect_cache.py --host 127.0.0.1 --port 8000 --partition trading-journal-runtime-v2
  python scripts/inspect_cache.py --clear
"""

import argparse
import sys
from datetime import datetime, timezone
from typing import List, Tuple

import httpx
from dateutil import parser as dateparser


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Inspect gateway cache partitions.")
    p.add_argument("--host", default="localhost", help="Gateway host (default: localhost)")
    p.add_argument("--port", type=int, default=8000, help="Gateway port (default: 8000)")
    p.add_argument("--partition", default=None, help="Only show this partition")
    p.add_argument("--api-prefix", default="/api/", help="API namespace that must never be cached")
    p.add_argument("--clear", action="store_true", help="Send CLEAR_CACHE instead of listing")
    return p.parse_args()


def validate_entry(entry: dict, api_prefix: str) -> Tuple[bool, str]:
    for f in ("key", "status", "size", "cached_at"):
        if f not in entry:
            return False, f"missing field: {f}"

    method, _, url = entry["key"].partition(" ")
    if method != "GET":
        return False, f"non-GET request cached: {entry['key']}"
    if url.startswith(api_prefix):
        return False, f"API response cached: {entry['key']}"

    if not (200 <= int(entry["status"]) <= 299):
        return False, f"non-2xx response cached: HTTP {entry['status']}"

    try:
        dateparser.isoparse(entry["cached_at"])
    except Exception:
        return False, f"invalid cached_at: {entry['cached_at']}"

    return True, ""


def format_age(cached_at: str) -> str:
    stored = dateparser.isoparse(cached_at)
    if stored.tzinfo is None:
        stored = stored.replace(tzinfo=timezone.utc)
    seconds = int((datetime.now(timezone.utc) - stored).total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    return f"{seconds // 3600}h{(seconds % 3600) // 60:02d}m"


def clear(base: str) -> int:
    try:
        resp = httpx.post(f"{base}/_gateway/messages", json={"type": "CLEAR_CACHE"}, timeout=30.0)
    except Exception as e:
        print(f"[Error] Request failed: {e}")
        return 2
    if resp.status_code != 200:
        print(f"[Error] HTTP {resp.status_code}: {resp.text[:300]}")
        return 2
    print(f"[OK] {resp.json().get('reply')}")
    return 0


def main() -> int:
    args = parse_args()
    base = f"http://{args.host}:{args.port}"

    if args.clear:
        return clear(base)

    url = f"{base}/_gateway/cache"
    params = {"partition": args.partition} if args.partition else None
    print(f"[Info] Requesting: {url}")

    try:
        resp = httpx.get(url, params=params, timeout=30.0)
    except Exception as e:
        print(f"[Error] Request failed: {e}")
        return 2

    if resp.status_code != 200:
        print(f"[Error] HTTP {resp.status_code}: {resp.text[:300]}")
        return 2

    try:
        data = resp.json()
    except Exception as e:
        print(f"[Error] Invalid JSON: {e}")
        return 2

    if not isinstance(data, dict):
        print("[Error] Response is not an object")
        return 2

    problems: List[str] = []
    total = 0
    for partition, entries in data.items():
        print(f"\n{partition} ({len(entries)} entries)")
        for entry in entries:
            total += 1
            ok, msg = validate_entry(entry, args.api_prefix)
            if not ok:
                problems.append(f"{partition}: {msg}")
                print(f"  [!] {entry.get('key')} - {msg}")
                continue
            print(
                f"  {entry['key']:<50} {entry['status']} "
                f"{entry['size']:>8}B  age {format_age(entry['cached_at'])}"
            )

    if problems:
        print(f"\n[Error] {len(problems)} invalid entries")
        return 1

    print(f"\n[OK] {total} entries across {len(data)} partitions")
    return 0


if __name__ == "__main__":
    sys.exit(main())
