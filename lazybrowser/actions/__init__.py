"""Action dispatch and effect application."""
