"""Database utilities and models."""

from kairos.db.base import Base
from kairos.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
