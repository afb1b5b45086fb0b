"""Filesystem event sources."""
