"""
Catalog cache package.

Client-side data layer for the prompt / LoRA / costume / gallery catalog:
per-resource caches persisted to a durable store, with change detection
through the catalog server's metadata endpoint and stale-while-revalidate
refresh.

Structure:
- app: cache core, oracle, storage backends and HTTP adapters.
- tests: unit tests for every layer.
"""
