"""SQLite persistence for users, credentials, sessions and gates."""
