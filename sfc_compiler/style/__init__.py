"""Style block extraction."""
