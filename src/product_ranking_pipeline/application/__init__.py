"""Application services that orchestrate ranking runs and queries."""
