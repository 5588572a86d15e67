"""Knowledge base client interface."""

from typing import Protocol, runtime_checkable

from entity_graph.models import KnowledgeBaseEntity


@runtime_checkable
class KnowledgeBaseClient(Protocol):
    """Read access to an external knowledge base such as Wikidata."""

    async def search(self, label: str, limit: int = 5) -> list[KnowledgeBaseEntity]:
        """Search entities by label, best matches first."""
        ...

    async def get_by_id(self, external_id: str) -> KnowledgeBaseEntity | None:
        """Fetch the full record of one entity."""
        ...

    async def get_related(self, external_id: str, limit: int = 20) -> list[KnowledgeBaseEntity]:
        """Entities linked to ``external_id`` in either direction."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
