"""Tasks module: storage, recurrence, analytics, search and bulk changes for property tasks."""
