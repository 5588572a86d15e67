"""Wikidata client for entity search, records and related entities."""

import logging
import re
from typing import Any

import httpx

from entity_graph.config import Settings
from entity_graph.models import KnowledgeBaseEntity

logger = logging.getLogger(__name__)

_ENTITY_ID = re.compile(r"Q\d+")
_ENTITY_URI_PREFIX = "http://www.wikidata.org/entity/"

RELATED_ENTITIES_QUERY = """
SELECT DISTINCT ?related ?relatedLabel ?relatedDescription WHERE {{
  {{ wd:{entity_id} ?property ?related . }}
  UNION
  {{ ?related ?property wd:{entity_id} . }}
  ?related rdfs:label ?relatedLabel .
  FILTER(LANG(?relatedLabel) = "{language}")
  OPTIONAL {{
    ?related schema:description ?relatedDescription .
    FILTER(LANG(?relatedDescription) = "{language}")
  }}
  FILTER(?related != wd:{entity_id})
  FILTER(STRSTARTS(STR(?related), "{uri_prefix}Q"))
}}
LIMIT {limit}
"""


def validate_entity_id(external_id: str) -> str:
    """Return the id if it is a Wikidata item id (``Q`` + digits).

    Raises:
        ValueError: For anything else, before it reaches a query string
    """
    if not isinstance(external_id, str) or not _ENTITY_ID.fullmatch(external_id):
        raise ValueError(f"Invalid Wikidata id: {external_id!r}")
    return external_id


class WikidataClient:
    """Wikidata client over the MediaWiki API, entity data and SPARQL endpoints."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        """Initialize Wikidata client.

        Args:
            settings: Settings with Wikidata endpoints and timeouts
            client: Optional preconfigured HTTP client (e.g. with a mock transport);
                the caller keeps ownership and closes it
        """
        self.settings = settings
        self.language = settings.wikidata_language
        self.headers = {
            "User-Agent": settings.user_agent,
            "Accept": "application/json",
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.enrichment_timeout_seconds)

    async def search(self, label: str, limit: int = 5) -> list[KnowledgeBaseEntity]:
        """Search entities by label.

        Args:
            label: Text to search for
            limit: Maximum results

        Returns:
            Matching entities in search ranking order
        """
        params = {
            "action": "wbsearchentities",
            "search": label,
            "language": self.language,
            "uselang": self.language,
            "type": "item",
            "limit": limit,
            "format": "json",
        }

        try:
            response = await self._client.get(
                self.settings.wikidata_api_url,
                params=params,
                headers=self.headers,
            )
            response.raise_for_status()
            results = response.json().get("search", [])
        except Exception as e:
            logger.error(f"Wikidata search failed for {label!r}: {e}")
            raise

        entities = [
            KnowledgeBaseEntity(
                id=item["id"],
                label=item.get("label", ""),
                description=item.get("description", ""),
                aliases=list(item.get("aliases", [])),
            )
            for item in results
            if _ENTITY_ID.fullmatch(item.get("id", ""))
        ]
        logger.debug(f"Wikidata search {label!r}: {len(entities)} results")
        return entities

    async def get_by_id(self, external_id: str) -> KnowledgeBaseEntity | None:
        """Fetch a full entity record.

        Args:
            external_id: Wikidata item id, e.g. ``Q1490``

        Returns:
            Entity record, or None if Wikidata does not know the id

        Raises:
            ValueError: If the id is not a Wikidata item id
        """
        validate_entity_id(external_id)

        try:
            response = await self._client.get(
                f"{self.settings.wikidata_entity_url}/{external_id}.json",
                headers=self.headers,
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json().get("entities", {}).get(external_id)
        except Exception as e:
            logger.error(f"Wikidata entity fetch failed for {external_id}: {e}")
            raise

        if data is None:
            return None
        return self._parse_entity(external_id, data)

    def _parse_entity(self, external_id: str, data: dict[str, Any]) -> KnowledgeBaseEntity:
        claims = data.get("claims", {})
        statements = [statement for values in claims.values() for statement in values]
        sitelinks = data.get("sitelinks", {})

        return KnowledgeBaseEntity(
            id=data.get("id", external_id),
            label=data.get("labels", {}).get(self.language, {}).get("value", ""),
            description=data.get("descriptions", {}).get(self.language, {}).get("value", ""),
            aliases=[alias["value"] for alias in data.get("aliases", {}).get(self.language, [])],
            statement_count=len(statements),
            sitelink_count=len(sitelinks),
            reference_count=sum(len(statement.get("references", [])) for statement in statements),
            sitelinks=[
                link.get("url") or f"https://{site}.wikipedia.org/wiki/{link.get('title', '')}"
                for site, link in sitelinks.items()
            ],
        )

    async def get_related(self, external_id: str, limit: int = 20) -> list[KnowledgeBaseEntity]:
        """Entities connected to an item by any property, in either direction.

        Args:
            external_id: Wikidata item id
            limit: Maximum results (capped by settings)

        Returns:
            Related entities, excluding the item itself

        Raises:
            ValueError: If the id is not a Wikidata item id
        """
        validate_entity_id(external_id)
        limit = max(1, min(limit, self.settings.related_entities_limit))

        query = RELATED_ENTITIES_QUERY.format(
            entity_id=external_id,
            language=self.language,
            uri_prefix=_ENTITY_URI_PREFIX,
            limit=limit,
        )

        try:
            response = await self._client.post(
                self.settings.wikidata_sparql_url,
                data={"query": query},
                headers={**self.headers, "Accept": "application/sparql-results+json"},
            )
            response.raise_for_status()
            bindings = response.json()["results"]["bindings"]
        except Exception as e:
            logger.error(f"Wikidata related query failed for {external_id}: {e}")
            raise

        related: dict[str, KnowledgeBaseEntity] = {}
        for binding in bindings:
            entity_id = binding["related"]["value"].removeprefix(_ENTITY_URI_PREFIX)
            if entity_id == external_id or entity_id in related or not _ENTITY_ID.fullmatch(entity_id):
                continue
            related[entity_id] = KnowledgeBaseEntity(
                id=entity_id,
                label=binding.get("relatedLabel", {}).get("value", ""),
                description=binding.get("relatedDescription", {}).get("value", ""),
            )

        return list(related.values())[:limit]

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
