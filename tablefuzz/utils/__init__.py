"""Utility modules for tablefuzz."""
