"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every feature uses (DB pool wiring,
settings helpers). Feature-specific SQL and business logic belong in the
corresponding feature package (e.g. `posts/`, `auth/`).
"""
