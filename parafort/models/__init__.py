# parafort/models/__init__.py
from parafort.db.base import Base  # noqa: F401

# order matters due to FKs
from . import business_entity        # noqa: F401
from . import compliance_calendar    # noqa: F401
from . import compliance_notification  # noqa: F401
from . import notification           # noqa: F401
