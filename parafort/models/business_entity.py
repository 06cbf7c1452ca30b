# parafort/models/business_entity.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime

from parafort.db.base import Base


class BusinessEntity(Base):
    """
    Formed business (LLC, Corporation, ...). Owned by the formation flow;
    the compliance engine only reads it.
    """

    __tablename__ = "business_entities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=True, index=True)

    name = Column(String(255), nullable=True)
    entity_type = Column(String(50), nullable=True, index=True)  # LLC, Corporation, S-Corp, ...
    state = Column(String(2), nullable=True, index=True)         # two-letter US state code

    # filed date with the Secretary of State
    formation_date = Column(Date, nullable=True)

    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<BusinessEntity id={self.id} {self.entity_type}/{self.state} formed={self.formation_date}>"
