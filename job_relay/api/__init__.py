"""HTTP surface: submission, status pages and event streams."""
