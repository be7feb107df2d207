"""Pure helpers: configuration, filename queries, match scoring, compatibility."""
