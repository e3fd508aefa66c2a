"""Template parsing and render function generation."""
