"""
Core layer - domain model, collaborator interfaces and services.
"""
