# parafort/core/deps.py
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from parafort.db.session import SessionLocal
from parafort.services.compliance import ComplianceEngine


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_engine(db: Session = Depends(get_db)) -> ComplianceEngine:
    """Per-request compliance engine; tests override this dependency."""
    return ComplianceEngine(db)
