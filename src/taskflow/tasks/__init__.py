"""
Task subsystem.

Components:
- task_models.py: enums, entities, projections and wire/domain mapping
- transitions.py: status transition guard
- tags.py: tag name normalization + upsert
- task_query.py: search parameters, paging coercion, filter composition
- task_store.py: SQLite-backed storage for projects, tasks, tags, comments
- task_service.py / project_service.py: lifecycle operations used by connectors
"""
