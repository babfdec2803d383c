"""Declaration generators for the flutter_solidart runtime."""
