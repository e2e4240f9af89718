"""Service-layer operations shared by routes and the CLI."""
