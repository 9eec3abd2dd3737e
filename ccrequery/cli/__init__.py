"""Command line interface for ccrequery."""
