"""Domain layer — cart models, discount resolution, and totals.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
