"""Circle Hub: community discovery, submission and approval sync service."""

__version__ = "0.1.0"
