"""
auth/models.py -- Domain dataclass for the credential record.

Pattern: Data class (pure data container, zero logic). The store owns
persistence, api/models.py owns the wire shape; this module only owns the
domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """A registered identity.

    Frozen because id is immutable once assigned and no mutation path exists
    for the other fields. Use dataclasses.replace() to derive a modified copy.

    email is always stored lowercased. password_hash is populated only by
    UserStore.find_by_email() (the login path needs it to verify); every other
    read returns the record with password_hash=None. It is never serialized
    to a client -- api/models.UserOut has no field for it.

    Timestamps are ISO 8601 UTC strings, as written by the store.
    """

    id: int
    email: str
    first_name: str
    last_name: str
    password_hash: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
