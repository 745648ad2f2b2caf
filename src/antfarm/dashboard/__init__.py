"""Read-only web dashboard over workflow runs."""
