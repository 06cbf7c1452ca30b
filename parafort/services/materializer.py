# parafort/services/materializer.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from parafort.core.exceptions import NotFoundError
from parafort.crud.business_entity import EntityStore
from parafort.crud.compliance_calendar import CalendarStore
from parafort.models.business_entity import BusinessEntity
from parafort.models.compliance_calendar import ComplianceCalendarEntry
from parafort.schemas.compliance_template import ComplianceTemplate
from parafort.services.compliance_catalog import ComplianceCatalog
from parafort.services.due_dates import calculate_due_dates
from parafort.services.reminders import ReminderScheduler

log = logging.getLogger("parafort.materializer")


def formation_date_for(entity: BusinessEntity, now: datetime) -> date:
    """Filed date, else record creation date, else today."""
    if entity.formation_date is not None:
        return entity.formation_date
    if entity.created_at is not None:
        return entity.created_at.date()
    return now.date()


def build_entry(business_entity_id: int, template: ComplianceTemplate, due: date, now: datetime) -> ComplianceCalendarEntry:
    return ComplianceCalendarEntry(
        business_entity_id=business_entity_id,
        event_type=template.event_type,
        event_title=template.title,
        event_description=template.description,
        due_date=due,
        status="pending",
        priority=template.priority,
        category=template.category,
        is_recurring=template.is_recurring,
        recurring_interval=template.recurring_interval,
        created_at=now,
        updated_at=now,
    )


class EventMaterializer:
    """
    Template catalogue + business entity -> concrete calendar rows.

    Idempotent: a (business_entity_id, event_type, due_date) key that already
    exists is skipped, both by lookup and by the unique constraint.
    """

    def __init__(
        self,
        db: Session,
        *,
        catalog: ComplianceCatalog,
        entities: EntityStore,
        calendar: CalendarStore,
        scheduler: ReminderScheduler,
        clock,
        channels: Sequence[str],
    ):
        self.db = db
        self.catalog = catalog
        self.entities = entities
        self.calendar = calendar
        self.scheduler = scheduler
        self.clock = clock
        self.channels = tuple(channels)

    def materialize(
        self,
        business_entity_id: int,
        entity: Optional[BusinessEntity] = None,
    ) -> List[ComplianceCalendarEntry]:
        """Insert the entity's missing calendar rows; returns only the new ones."""
        if entity is None:
            entity = self.entities.get_business_entity(business_entity_id)
        if entity is None:
            log.error("materialize aborted: business entity %s not found", business_entity_id)
            raise NotFoundError("business_entity", business_entity_id)

        now = self.clock.now()
        formation = formation_date_for(entity, now)
        created: List[ComplianceCalendarEntry] = []
        skipped = 0

        try:
            for template in self.catalog.applicable_templates(entity.entity_type, entity.state):
                rule = self.catalog.rule_for(template.event_type, entity.state, entity.entity_type)
                due_dates = calculate_due_dates(template, formation, now.year, now=now, rule=rule)
                for due in due_dates:
                    if self.calendar.find_by_key(business_entity_id, template.event_type, due) is not None:
                        skipped += 1
                        continue
                    entry = self.calendar.insert(build_entry(business_entity_id, template, due, now))
                    if entry is None:
                        skipped += 1
                        continue
                    self.scheduler.schedule(
                        entry,
                        self.catalog.lead_times_for(template.event_type),
                        self.channels,
                        entity=entity,
                    )
                    created.append(entry)
            self.db.commit()
        except Exception:
            self.db.rollback()
            log.exception("materialize failed for business entity %s; rolled back", business_entity_id)
            raise

        log.info(
            "materialized business_entity=%s created=%d duplicates_skipped=%d",
            business_entity_id, len(created), skipped,
        )
        return created

    def materialize_recent_entities(self, since: datetime) -> dict:
        """Sweep for businesses created since `since` (weekly job)."""
        results = {"entities": 0, "created": 0, "errors": 0}
        for entity in self.entities.created_since(since):
            results["entities"] += 1
            try:
                results["created"] += len(self.materialize(entity.id, entity))
            except Exception:
                results["errors"] += 1
                log.exception("weekly sweep: materialize failed for business entity %s", entity.id)
        return results
