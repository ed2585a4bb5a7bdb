"""Domain building blocks and the scheduling error taxonomy."""
