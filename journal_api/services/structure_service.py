"""
StructureRegistry - Journal Structure Versioning

A user's structure evolves over time. Destructive edits (a group, field or
field type removed) fork a new version so entries recorded under the old
schema stay interpretable; every other edit mutates the active version.
"""

import logging
from typing import Iterable, Optional
from uuid import uuid4

from journal_api.db import keys
from journal_api.db.kv_store import KeyValueStore
from journal_api.exceptions import RecordNotFoundError
from journal_api.models import DeletedElements, Field, Group, StructureVersion
from journal_api.observability.metrics import structure_saves_total
from journal_api.utils.datetime_helpers import (
    DateProvider,
    current_timestamp,
    validate_date_string,
)

logger = logging.getLogger(__name__)


def _version_order(version: StructureVersion) -> tuple[str, str, bool]:
    # on equal date and createdAt the active version sorts last
    return version.effective_from, version.created_at, version.is_active


def select_version_for_date(
    versions: Iterable[StructureVersion], date: str
) -> Optional[StructureVersion]:
    """
    Pick the version governing a date.

    The version with the greatest effectiveFrom <= date wins (newest
    createdAt on ties). A date older than every version falls back to the
    oldest version, and a lone version is returned whatever the date.

    Returns:
        The selected version, or None when there are no versions
    """
    ordered = sorted(versions, key=_version_order)
    if not ordered:
        return None
    if len(ordered) == 1:
        return ordered[0]

    eligible = [v for v in ordered if v.effective_from <= date]
    if eligible:
        return eligible[-1]
    return ordered[0]


def find_field(structure: StructureVersion, field_id: str) -> Optional[tuple[Field, str]]:
    """(field, group id) for field_id, or None"""
    return structure.find_field(field_id)


class StructureRegistry:
    """
    Service for structure versions.

    Responsibilities:
    - Create the first version on first save
    - Fork a new version when elements are deleted
    - Update the active version in place otherwise
    - Resolve the version effective on a given date
    """

    def __init__(self, store: KeyValueStore, date_provider: DateProvider):
        """
        Initialize StructureRegistry.

        Args:
            store: Key-value store holding the structure partition
            date_provider: Supplies the user's current date
        """
        self.store = store
        self.date_provider = date_provider

    async def list_versions(self, user_id: str) -> list[StructureVersion]:
        """All versions for a user, ordered by effectiveFrom then createdAt"""
        items = await self.store.query(keys.structure_pk(user_id), keys.STRUCTURE_PREFIX)
        versions = [StructureVersion.model_validate(item) for item in items]
        return sorted(versions, key=_version_order)

    async def get_active_structure(self, user_id: str) -> Optional[StructureVersion]:
        active = [v for v in await self.list_versions(user_id) if v.is_active]
        if not active:
            return None
        if len(active) > 1:
            logger.warning(
                f"User {user_id} has {len(active)} active structure versions, "
                f"using {active[-1].structure_id}"
            )
        return active[-1]

    async def get_structure_for_date(self, user_id: str, date: str) -> StructureVersion:
        """
        Structure version effective on date

        Raises:
            RecordNotFoundError: If the user has no structure yet
        """
        validate_date_string(date)
        version = select_version_for_date(await self.list_versions(user_id), date)
        if version is None:
            raise RecordNotFoundError(
                message="No journal structure found. Please create one first.",
                record_type="structure",
                record_id=date,
                user_id=user_id,
                operation="get_structure_for_date",
            )
        logger.debug(f"Structure {version.structure_id} governs {date} for user {user_id}")
        return version

    async def save_structure(
        self,
        user_id: str,
        groups: list[Group],
        deleted_elements: Optional[DeletedElements] = None,
        as_of_date: Optional[str] = None,
    ) -> tuple[StructureVersion, bool]:
        """
        Save a user's structure.

        Args:
            user_id: Owner of the structure
            groups: Complete submitted group list
            deleted_elements: Ids removed compared to the active version
            as_of_date: effectiveFrom for a new version (defaults to today)

        Returns:
            (version, created) where created is True when a new version
            was written and False for an in-place update

        Raises:
            ConditionFailedError: If the active version was deactivated by
                a concurrent save
        """
        as_of_date = validate_date_string(as_of_date or self.date_provider.today(user_id))
        deleted_elements = deleted_elements or DeletedElements()
        now = current_timestamp()
        pk = keys.structure_pk(user_id)

        active = await self.get_active_structure(user_id)

        if active is None:
            version = await self._insert_version(user_id, groups, as_of_date, now)
            structure_saves_total.labels(outcome="created").inc()
            logger.info(
                f"Created first structure {version.structure_id} for user {user_id} "
                f"effective {as_of_date}"
            )
            return version, True

        if not deleted_elements.is_empty():
            await self.store.update(
                pk,
                keys.structure_sk(active.effective_from, active.structure_id),
                {"isActive": False, "updatedAt": now},
                condition={"isActive": True},
            )
            version = await self._insert_version(user_id, groups, as_of_date, now)
            structure_saves_total.labels(outcome="versioned").inc()
            logger.info(
                f"Structure {active.structure_id} superseded by {version.structure_id} "
                f"for user {user_id} effective {as_of_date} "
                f"({len(deleted_elements.all_ids())} elements deleted)"
            )
            return version, True

        candidate = active.model_copy(update={"groups": groups, "updated_at": now})
        missing = active.element_ids() - candidate.element_ids()
        if missing:
            logger.warning(
                f"Structure save for user {user_id} drops {len(missing)} elements "
                f"without declaring them deleted; updating {active.structure_id} in place"
            )

        item = await self.store.update(
            pk,
            keys.structure_sk(active.effective_from, active.structure_id),
            {"groups": [group.to_item() for group in groups], "updatedAt": now},
            condition={"isActive": True},
        )
        structure_saves_total.labels(outcome="updated").inc()
        logger.info(f"Updated structure {active.structure_id} in place for user {user_id}")
        return StructureVersion.model_validate(item), False

    async def _insert_version(
        self, user_id: str, groups: list[Group], effective_from: str, now: str
    ) -> StructureVersion:
        version = StructureVersion(
            structure_id=str(uuid4()),
            user_id=user_id,
            is_active=True,
            effective_from=effective_from,
            groups=groups,
            created_at=now,
            updated_at=now,
        )
        await self.store.put(
            keys.structure_pk(user_id),
            keys.structure_sk(version.effective_from, version.structure_id),
            version.to_item(),
        )
        return version
