"""CLI subcommands for depi."""
