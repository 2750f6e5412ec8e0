"""Review orchestration: config, cache, diff statistics and the remote review client."""
