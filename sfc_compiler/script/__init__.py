"""Script analysis, binding classification and setup transform."""
