"""Module assembly."""
