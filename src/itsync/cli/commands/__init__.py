"""CLI commands, loaded lazily by the root group."""
