"""Search, distance and classification engines built on the symbol compatibility relation."""
