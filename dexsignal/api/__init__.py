"""HTTP API for dexsignal."""
