"""
Event Mesh persistence and query service.

- core/: Configuration, logging, exceptions, database, HTTP plumbing
- models/: SQLAlchemy tables for events and narrative contexts
- schemas/: Pydantic wire models
- repositories/: SQL data access
- stores/: Durable and in-memory store variants
- services/: Publish pipeline, query engine, outcome backfill, narratives
- api/: FastAPI routers
"""
