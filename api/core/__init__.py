"""
Shared, cross-cutting code for the API.

`core/` holds the pieces every feature package uses: DB pool and query
helpers, settings, the error taxonomy, the response envelope and the blob
store. Feature SQL and business rules stay in their own package
(e.g. `projects/`).
"""
