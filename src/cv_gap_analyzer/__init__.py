"""CV gap analysis against talent profiles and career paths."""

__version__ = "0.1.0"
