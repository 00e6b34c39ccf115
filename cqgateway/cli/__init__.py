"""Command-line interface for cqgateway."""
