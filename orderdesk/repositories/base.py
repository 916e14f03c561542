from typing import Any, Dict, Generic, Optional, Type, TypeVar, Union
from sqlalchemy.orm import Session
from pydantic import BaseModel

from ..core.exceptions import NotFoundError

ModelType = TypeVar("ModelType")
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    def __init__(self, model: Type[ModelType]):
        """
        Repository with default methods to Create, Read and Update.

        Write methods commit by default. Pass ``commit=False`` when the write
        is one step of a larger transaction; the session is flushed instead so
        generated keys are available.
        """
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """Get a single record by ID"""
        return db.query(self.model).filter(self.model.id == id).first()

    def get_or_404(self, db: Session, id: Any) -> ModelType:
        obj = self.get(db, id)
        if obj is None:
            raise NotFoundError(self.model.__name__, id)
        return obj

    def create(self, db: Session, *, obj_in: Union[CreateSchemaType, Dict[str, Any]], commit: bool = True) -> ModelType:
        """Create a new record"""
        obj_in_data = obj_in.model_dump() if isinstance(obj_in, BaseModel) else dict(obj_in)
        db_obj = self.model(**obj_in_data)
        db.add(db_obj)
        self._persist(db, db_obj, commit)
        return db_obj

    def update(
        self,
        db: Session,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        """Update an existing record"""
        obj_data = obj_in.model_dump(exclude_unset=True) if isinstance(obj_in, BaseModel) else obj_in

        for field, value in obj_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        db.add(db_obj)
        self._persist(db, db_obj, commit)
        return db_obj

    @staticmethod
    def _persist(db: Session, db_obj: ModelType, commit: bool) -> None:
        if commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
