"""Policy constants for permissions and merge-chain resolution."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Final

from powermap.domain.merging.chain import DEFAULT_MAX_MERGE_DEPTH
from powermap.domain.permissions import (
    DEFAULT_DELETABLE_LINK_LIMIT,
    DEFAULT_DELETION_GRACE_WINDOW,
    PermissionPolicy,
)

from .env import positive_int_env

DELETION_GRACE_DAYS_ENV: Final[str] = "POWERMAP_DELETION_GRACE_DAYS"
DELETABLE_LINK_LIMIT_ENV: Final[str] = "POWERMAP_DELETABLE_LINK_LIMIT"
MAX_MERGE_DEPTH_ENV: Final[str] = "POWERMAP_MAX_MERGE_DEPTH"


@dataclass(frozen=True, slots=True)
class MergePolicy:
    max_chain_depth: int = DEFAULT_MAX_MERGE_DEPTH


def get_permission_policy() -> PermissionPolicy:
    grace_days = positive_int_env(DELETION_GRACE_DAYS_ENV, DEFAULT_DELETION_GRACE_WINDOW.days)
    return PermissionPolicy(
        deletion_grace_window=timedelta(days=grace_days),
        deletable_link_limit=positive_int_env(
            DELETABLE_LINK_LIMIT_ENV,
            DEFAULT_DELETABLE_LINK_LIMIT,
        ),
    )


def get_merge_policy() -> MergePolicy:
    return MergePolicy(
        max_chain_depth=positive_int_env(MAX_MERGE_DEPTH_ENV, DEFAULT_MAX_MERGE_DEPTH),
    )
