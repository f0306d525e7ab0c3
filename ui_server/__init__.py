"""Static site server for the pre-built UI bundle."""
