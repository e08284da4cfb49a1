"""Clinic appointment booking over WhatsApp."""

__version__ = "1.0.0"
