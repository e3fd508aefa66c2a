"""Pipeline core: compiler entry points, session, models, diagnostics and configuration."""
