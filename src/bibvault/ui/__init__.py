"""User-facing interfaces built on top of the core package."""
