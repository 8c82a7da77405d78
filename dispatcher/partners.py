from typing import Any, Dict, Optional


def is_partnership_member(partnership: Optional[Dict[str, Any]], user_id: Optional[str]) -> bool:
    if not partnership or not user_id:
        return False
    return user_id in (partnership.get("user1Id"), partnership.get("user2Id"))


def resolve_partner(partnership: Optional[Dict[str, Any]], author_id: Optional[str]) -> Optional[str]:
    """
    Return the other participant of a partnership.

    Returns None when the partnership document is absent or the author is
    neither ``user1Id`` nor ``user2Id``.
    """
    if not is_partnership_member(partnership, author_id):
        return None

    if author_id == partnership.get("user1Id"):
        return partnership.get("user2Id")
    return partnership.get("user1Id")
