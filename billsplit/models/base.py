"""Base model class with SQLAlchemy type hints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import re
from typing import TYPE_CHECKING, Any, cast

from flask_sqlalchemy.model import DefaultMeta
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from ..extensions import db as _db

# Type for SQLAlchemy model base
if TYPE_CHECKING:
    Model = _db.Model
else:
    # At runtime, use the actual model
    Model = cast(DefaultMeta, _db.Model)


class BaseModel(Model):  # type: ignore
    """Base model class with common functionality for all models.

    Primary keys are declared by each model: bills and items use generated
    string keys rather than autoincrement integers.
    """

    __abstract__ = True

    updated_at: Mapped[datetime] = mapped_column(
        _db.DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Timestamp when the record was last updated",
    )

    @_db.declared_attr
    def __tablename__(cls) -> str:
        """Generate __tablename__ automatically.

        Converts CamelCase class names to snake_case table names.
        """
        name = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", cls.__name__)
        return re.sub("([a-z0-9])([A-Z])", r"\1_\2", name).lower()

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary.

        Returns:
            Dict[str, Any]: Dictionary representation of the model
        """
        result: dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if hasattr(value, "isoformat"):
                value = value.isoformat()
            elif isinstance(value, Decimal):
                value = float(value)
            result[column.name] = value
        return result

    def delete(self, commit: bool = True) -> None:
        """Delete the current model instance from the database.

        Args:
            commit: If True, commit the transaction. Set to False if you want to
                   delete multiple objects in a single transaction.
        """
        _db.session.delete(self)
        if commit:
            try:
                _db.session.commit()
            except Exception as e:
                _db.session.rollback()
                raise e
