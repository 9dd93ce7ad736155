"""Command line interface for chainnet."""
