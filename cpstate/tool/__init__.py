"""Command line tool for importing exported control plane state."""
