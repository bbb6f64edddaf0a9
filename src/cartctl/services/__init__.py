"""Service layer — cart state, coupon lifecycle, and snapshot publication.

Services may import from domain, infrastructure, and plugins.
They must never import from commands or output.
"""
