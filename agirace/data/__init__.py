"""Default content tables: faction roster, tech tree and events."""
