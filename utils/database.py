from datetime import date, datetime, timezone
from typing import Annotated, Any, Dict, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from database.documents.store import Document

T = TypeVar("T", bound="Record")


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    # Fixed width so lexical order matches chronological order in the store
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


Timestamp = Annotated[datetime, PlainSerializer(_format_timestamp, return_type=str, when_used="json")]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(value: Optional[datetime] = None) -> int:
    return int((value or utcnow()).timestamp() * 1000)


class Record(BaseModel):
    """
    Base class for stored entities.

    Field names are snake_case in Python and camelCase in the stored
    document. The document id is carried on the model but not stored in
    the document body.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


def doc_to_model(doc: Document, model_class: type[T]) -> T:
    """
    Convert a stored document to a record instance.

    Args:
        doc: Document read from the store
        model_class: Record subclass

    Returns:
        Instance of the specified model class
    """
    return model_class.model_validate({**doc.data, "id": doc.id})


def optional_doc_to_model(doc: Optional[Document], model_class: type[T]) -> Optional[T]:
    return doc_to_model(doc, model_class) if doc else None


def birthday_to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
