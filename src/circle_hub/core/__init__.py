"""Core configuration for Circle Hub."""
