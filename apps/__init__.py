"""Django apps of the car-wash scheduling service."""
