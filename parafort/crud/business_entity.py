# parafort/crud/business_entity.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from parafort.models.business_entity import BusinessEntity


class EntityStore:
    """Read-only lookups of business entities."""

    def __init__(self, db: Session):
        self.db = db

    def get_business_entity(self, entity_id: int) -> Optional[BusinessEntity]:
        return self.db.get(BusinessEntity, entity_id)

    def count(self) -> int:
        return self.db.query(BusinessEntity).count()

    def created_since(self, since: datetime) -> List[BusinessEntity]:
        return (
            self.db.query(BusinessEntity)
            .filter(BusinessEntity.created_at >= since)
            .order_by(BusinessEntity.id.asc())
            .all()
        )
