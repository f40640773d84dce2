"""
Feature modules live under this package.

Each module owns its models, service functions and routes, and reuses the
platform primitives (admin session, feature flags, audit, DB session).
"""
