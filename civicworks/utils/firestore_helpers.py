"""
Firestore query helpers.

NOTE: For firebase_admin SDK, we use positional arguments which still work.
The deprecation warning is just a warning - the functionality is still supported.
"""

from typing import Any, Dict


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "owner", "==", user_id)
        query = where_filter(query, "read", "==", False)
    """
    return query.where(field_path, op_string, value)


def apply_equality_filters(query, equals: Dict[str, Any]):
    """Chain an equality where() for every non-None entry of `equals`."""
    for field_path, value in equals.items():
        if value is None:
            continue
        query = where_filter(query, field_path, "==", value)
    return query


def snapshot_to_dict(snapshot) -> Dict:
    """Convert a DocumentSnapshot into a plain dict carrying its id."""
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data
