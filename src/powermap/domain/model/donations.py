"""Campaign-finance records matched to entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Protocol, runtime_checkable

from .enums import DonationDataset, DonationRole


@dataclass(eq=False, kw_only=True)
class OsDonation:
    """A federal (OpenSecrets) donation row."""

    id: int | None = None
    fec_cycle_id: str
    cycle: str | None = None
    amount: int = 0
    date: str | None = None
    recipid: str | None = None
    cmteid: str | None = None


@dataclass(eq=False, kw_only=True)
class NyDisclosure:
    """A New York State campaign-finance disclosure row."""

    id: int | None = None
    filer_id: str | None = None
    amount: int = 0
    date: str | None = None


@runtime_checkable
class DonationMatch(Protocol):
    """Join between an external donation record and the entities it involves."""

    DATASET: ClassVar[DonationDataset]

    @property
    def id(self) -> int | None: ...

    @property
    def donor_id(self) -> int | None: ...

    @property
    def recip_id(self) -> int | None: ...

    @property
    def relationship_id(self) -> int | None: ...

    @property
    def amount(self) -> int: ...


def role_of(match: DonationMatch, entity_id: int) -> DonationRole | None:
    """Which side of the match ``entity_id`` is on, donor side first."""

    if match.donor_id == entity_id:
        return DonationRole.DONOR
    if match.recip_id == entity_id:
        return DonationRole.RECIPIENT
    return None


@dataclass(eq=False, kw_only=True)
class OsMatch:
    DATASET: ClassVar[DonationDataset] = DonationDataset.OPEN_SECRETS

    id: int | None = None
    os_donation_id: int
    donor_id: int | None = None
    recip_id: int | None = None
    cmte_id: int | None = None
    relationship_id: int | None = None

    _donation: OsDonation | None = field(default=None, repr=False)

    @property
    def donation(self) -> OsDonation | None:
        return self._donation

    @property
    def amount(self) -> int:
        return self._donation.amount if self._donation is not None else 0


@dataclass(eq=False, kw_only=True)
class NyMatch:
    DATASET: ClassVar[DonationDataset] = DonationDataset.NYS

    id: int | None = None
    ny_disclosure_id: int
    donor_id: int | None = None
    recip_id: int | None = None
    relationship_id: int | None = None

    _disclosure: NyDisclosure | None = field(default=None, repr=False)

    @property
    def disclosure(self) -> NyDisclosure | None:
        return self._disclosure

    @property
    def amount(self) -> int:
        return self._disclosure.amount if self._disclosure is not None else 0
