"""Infrastructure layer — SQLite persistence and discount catalog sources.

Reference implementations of the collaborator protocols in
:mod:`cartctl.services.contracts`. Depends on the domain models and on
third-party libs (SQLAlchemy); never on services, commands, or output.
"""
