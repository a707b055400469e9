"""Services that orchestrate a harvest pass."""
