"""Default workspace provisioning.

Lazily ensures the authenticated principal owns a default workspace,
creating it (plus an owner membership) on first need, then serving it from
a session-scoped single-flight cache.
"""
