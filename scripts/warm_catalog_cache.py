#!/usr/bin/env python3
"""
Warm the durable catalog cache from the catalog server.

Loads the selected catalog resources through the same ResourceCache path the
web client uses and flushes them to the configured store, so the next cold
start serves data before any network call completes.
"""

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional
import sys
import os

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from shared.config import CacheConfig  # noqa: E402
from shared.logging import configure_logging  # noqa: E402
from shared.metrics import MetricsCollector  # noqa: E402
from catalog_cache.app import create_catalog_client, create_registry  # noqa: E402
from catalog_cache.app.adapters import CATALOG_RESOURCES, register_catalog  # noqa: E402


async def warm(
    config: CacheConfig,
    keys: List[str],
    *,
    force: bool,
    metrics: Optional[MetricsCollector] = None,
) -> Dict[str, Any]:
    """Load ``keys`` and return a per-key summary."""
    registry = create_registry(config, metrics=metrics)
    client = create_catalog_client(config)
    caches = register_catalog(registry, client, keys, auto_load=False)

    await asyncio.gather(*(cache.load(force=force) for cache in caches.values()))
    await registry.close()

    return {
        key: {
            "loaded": cache.has_value and cache.error is None,
            "last_modified": cache.last_modified,
            "error": cache.error.message if cache.error else None,
        }
        for key, cache in caches.items()
    }


def _parse_args() -> argparse.Namespace:
    defaults = CacheConfig()
    parser = argparse.ArgumentParser(description="Warm the durable catalog cache.")
    parser.add_argument("--base-url", default=defaults.api_base_url, help="Catalog server base URL")
    parser.add_argument("--keys", nargs="+", default=list(CATALOG_RESOURCES),
                        choices=sorted(CATALOG_RESOURCES), help="Resource keys to warm")
    parser.add_argument("--store", default=defaults.store_backend, choices=("file", "redis", "memory"),
                        help="Durable store backend")
    parser.add_argument("--store-path", default=defaults.store_path, help="Directory for the file store")
    parser.add_argument("--redis-url", default=defaults.redis_url, help="Redis connection URL")
    parser.add_argument("--force", action="store_true", help="Re-fetch even when the stored copy is fresh")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write JSON summary")
    parser.add_argument("--metrics-file", type=Path, default=None,
                        help="Optional path to write Prometheus metrics in text format")
    parser.add_argument("--log-level", default=defaults.log_level, help="Log level")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    configure_logging("catalog_cache.warm", args.log_level)
    config = CacheConfig(
        api_base_url=args.base_url,
        store_backend=args.store,
        store_path=args.store_path,
        redis_url=args.redis_url,
        log_level=args.log_level,
    )

    metrics = MetricsCollector()

    try:
        summary = asyncio.run(warm(config, args.keys, force=args.force, metrics=metrics))
    except KeyboardInterrupt:
        return 130
    except Exception as exc:  # pragma: no cover - CLI surface
        print(f"[cache-warm] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))

    if args.output:
        args.output.write_text(json.dumps(summary, indent=2))

    if args.metrics_file:
        metrics.write_textfile(str(args.metrics_file))

    return 0 if all(entry["loaded"] for entry in summary.values()) else 1


if __name__ == "__main__":
    raise SystemExit(main())
