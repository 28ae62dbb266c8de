"""Field-level change tracking for client updates.

`compute_diff` compares a stored client against a proposed update and returns
one FieldChange per tracked field that actually changes, in a fixed order:
Name, Email, Phone, Company, Status, Tags, Custom Fields.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from filali_crm.crm.models import FieldChange

if TYPE_CHECKING:
    from filali_crm.crm.schemas import ClientUpdate
    from filali_crm.models.client import Client

NOT_SET = "Not set"
NO_TAGS = "None"
CUSTOM_FIELDS_LABEL = "Updated"

# (label, attribute) for plain scalar fields, in reporting order.
SCALAR_FIELDS: tuple[tuple[str, str], ...] = (
    ("Name", "full_name"),
    ("Email", "email"),
    ("Phone", "phone"),
    ("Company", "company"),
)


def _render_tags(tags: list[str] | None) -> str:
    return ", ".join(tags or []) or NO_TAGS


def compute_diff(current: Client, proposed: ClientUpdate) -> list[FieldChange]:
    """Compute the changes a proposed update would make to a client.

    A field only produces a change when the update provides it and the value
    differs from what is stored. Unset values on the stored client render as
    "Not set" rather than an empty string.

    Args:
        current: Client as currently stored.
        proposed: Partial update; None means "not provided".

    Returns:
        List of FieldChange, empty when the update is a no-op.

    Example:
        >>> compute_diff(client, ClientUpdate(phone="+15550100"))
        [FieldChange(field='Phone', old_value='Not set', new_value='+15550100')]
    """
    changes: list[FieldChange] = []

    for label, attribute in SCALAR_FIELDS:
        new_value = getattr(proposed, attribute)
        old_value = getattr(current, attribute)
        if new_value and new_value != old_value:
            changes.append(
                FieldChange(
                    field=label,
                    old_value=old_value or NOT_SET,
                    new_value=new_value,
                )
            )

    if proposed.status is not None and proposed.status != current.status:
        changes.append(
            FieldChange(
                field="Status",
                old_value=current.status.value if current.status else NOT_SET,
                new_value=proposed.status.value,
            )
        )

    if proposed.tags is not None and list(proposed.tags) != list(current.tags or []):
        changes.append(
            FieldChange(
                field="Tags",
                old_value=_render_tags(current.tags),
                new_value=_render_tags(proposed.tags),
            )
        )

    # Custom fields are opaque: record that they changed, not their content.
    if proposed.custom is not None and proposed.custom != (current.custom or {}):
        changes.append(
            FieldChange(
                field="Custom Fields",
                old_value=CUSTOM_FIELDS_LABEL,
                new_value=CUSTOM_FIELDS_LABEL,
            )
        )

    return changes
