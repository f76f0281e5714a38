"""
Task subsystem.

Components:
- task_models.py: data structures (ScheduledTask, TaskState, CancelResult)
- task_registry.py: pending tasks, their timers and the deliver-or-cancel protocol
- scheduling_service.py: request validation and upload cleanup in front of the registry
"""
