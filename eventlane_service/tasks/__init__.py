"""Background task infrastructure using Taskiq.

This package provides:
- broker.py: Taskiq broker (taskiq-aio-pika) and label-driven cron scheduler
- webhooks/: webhook delivery and retry sweep tasks

Run the worker and the scheduler:
    taskiq worker eventlane_service.tasks.broker:broker
    taskiq scheduler eventlane_service.tasks.broker:scheduler
"""
