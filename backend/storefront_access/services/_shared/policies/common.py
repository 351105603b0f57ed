def is_owner(*, actor_id, owner_id) -> bool:
    """Return True if the actor owns the resource (``None`` never owns anything)."""
    if actor_id is None or owner_id is None:
        return False
    return str(actor_id) == str(owner_id)


def same_email(left: str | None, right: str | None) -> bool:
    """Case-insensitive email equality; blanks never match."""
    if not left or not right:
        return False
    return left.strip().casefold() == right.strip().casefold()
