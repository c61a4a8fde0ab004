"""Branch-scoped role and permission resolution for a multi-campus school system."""
