"""Lattice-style KEM and signatures, key management, auditing, memory canaries and identity records."""

__version__ = "0.1.0"