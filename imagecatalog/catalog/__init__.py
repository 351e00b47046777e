"""Catalog operations: filtering, discovery, sub-indices and harvest."""
