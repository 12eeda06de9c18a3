"""Rows returned by a similarity search against the knowledge store."""

from enum import Enum

from pydantic import BaseModel


class KnowledgeCollection(str, Enum):
    """The two logical collections of the knowledge store."""

    DOCUMENTS = "documents"
    INVENTORY = "inventory"


class KnowledgeHit(BaseModel):
    """Common fields of every search hit.

    Attributes:
        id:       Row identifier in the backing store.
        user_id:  Owning tenant. Checked against the requesting user on every search.
        score:    Cosine similarity to the query vector (1 - cosine distance), higher is closer.
    """

    id: str
    user_id: str
    score: float


class DocumentHit(KnowledgeHit):
    """A free-text knowledge document (policy, FAQ, ...)."""

    title: str | None = None
    category: str | None = None
    content: str = ""


class InventoryHit(KnowledgeHit):
    """A car stock item."""

    name: str
    type: str | None = None
    description: str | None = None
    price: float | str | None = None
    image_url: str | None = None
    url: str | None = None
    notes: str | None = None
    is_deleted: bool = False
