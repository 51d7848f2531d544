"""FinSage coaching marketplace backend."""
