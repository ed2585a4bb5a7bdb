"""Analytics app package: read-only booking statistics per provider."""
