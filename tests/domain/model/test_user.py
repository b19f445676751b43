from __future__ import annotations

import pytest

from powermap.domain.model import (
    Ability,
    InvalidOperationError,
    SetOperation,
    TagAccessRules,
    User,
)


def test_grant_and_revoke_abilities() -> None:
    user = User(username="editor")

    user.grant(Ability.EDIT, Ability.MERGE)
    user.revoke(Ability.EDIT)

    assert user.abilities == frozenset({Ability.MERGE})
    assert user.has_ability(Ability.MERGE)


def test_tag_access_rules_union_and_difference() -> None:
    assert TagAccessRules.update(None, [1, 2], "union") == frozenset({1, 2})
    assert TagAccessRules.update([1, 2, 3], [2], SetOperation.DIFFERENCE) == frozenset({1, 3})


def test_tag_access_rules_reject_unknown_operation() -> None:
    with pytest.raises(InvalidOperationError, match="intersection"):
        TagAccessRules.update([1], [1], "intersection")


def test_tag_ownership_is_stored_as_permission_rules() -> None:
    user = User(username="owner")

    user.grant_tag_ownership(5)
    user.grant_tag_ownership(2)
    user.revoke_tag_ownership(5)

    assert user.owned_tag_ids == frozenset({2})
    (permission,) = user._permissions  # pyright: ignore[reportPrivateUsage]
    assert permission.resource_type == "Tag"
    assert permission.access_rules == {"tag_ids": [2]}
