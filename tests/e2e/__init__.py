"""Browser scenarios against a live application."""
