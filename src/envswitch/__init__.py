"""envswitch: per-environment .env management with backups."""
