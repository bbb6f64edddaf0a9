"""cartctl — cart pricing and discount resolution core."""

__version__ = "0.4.0"
