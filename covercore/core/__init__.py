"""
Core domain models, integer math primitives, contracts and errors.

This module contains the foundational building blocks shared by the
staking engine, the registry and the collaborator services.
"""
