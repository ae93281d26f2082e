class ActionError(ValueError):
    """A write refused by a domain rule (slug taken, category has children...)."""
