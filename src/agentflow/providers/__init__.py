"""Provider invocation layer: prioritized pool, rate limits, live and mock calls."""
