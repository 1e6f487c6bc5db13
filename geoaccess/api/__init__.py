"""GEOACCESS API - engine services and HTTP surface."""
