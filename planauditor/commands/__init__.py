"""Click commands registered on the planaudit CLI."""
