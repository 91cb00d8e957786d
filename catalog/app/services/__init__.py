"""Business services for the catalog application."""
