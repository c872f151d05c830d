"""School and facility map with route planning."""
__version__ = "0.1.0"
