"""Command line tools for text image rendering."""
