"""Command-line tools for the vault (devnet simulation)."""
