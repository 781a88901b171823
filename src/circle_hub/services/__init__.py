"""Service layer for submission review and listing sync."""
