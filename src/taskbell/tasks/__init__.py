"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority, TaskFilter, ...)
- dates.py: due-date normalization to canonical YYYY-MM-DD
- task_store.py: in-memory task list persisted through a key-value store
- task_scheduler.py: per-task due-soon reminder timers + periodic sweep
"""
