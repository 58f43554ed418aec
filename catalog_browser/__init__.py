"""Catalog browser: item listing API, stats cache and query-mirroring client."""
