"""Editorial content workflow engine."""
