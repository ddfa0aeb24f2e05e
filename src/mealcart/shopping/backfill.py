"""Offline jobs that fill in master list base ingredients and embeddings."""
# mypy: ignore-errors

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import httpx

from mealcart.config import Settings, get_settings
from mealcart.db import master_list as master_list_store
from mealcart.models.master_list import MasterListItem
from mealcart.shopping.embeddings import Embedder

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)

NORMALISE_SYSTEM_PROMPT = (
    "You are a helpful assistant that normalises grocery product names to their base "
    "ingredient concept. Always return valid JSON."
)

NORMALISE_USER_PROMPT = (
    "Normalise these grocery product names to their base ingredient concept.\n\n"
    "Items:\n{items_json}\n\n"
    "Rules:\n"
    "- STRIP: brand names, quantities and weights (325g, x5, 1kg, 2L), generic quality "
    "descriptors (fresh, organic, large, free range), preparation words that don't change "
    "the product (sliced, grated, pre-sliced) and container words (\"bag of salad\" = "
    "\"salad\", \"bunch of spring onions\" = \"spring onions\").\n"
    "- KEEP: descriptors that distinguish the product type (baby plum vs salad, red vs white, "
    "smoked vs unsmoked), variants that matter for cooking (garlic granules is not garlic) "
    "and compound names where both words matter (spring onions, pine nuts, soy sauce).\n\n"
    "Return lowercase base ingredient names.\n\n"
    'Return JSON: {{"items": [{{"id": 1, "base_ingredient": "..."}}]}}'
)


@dataclass(frozen=True)
class BackfillReport:
    processed: int
    batches: int
    dry_run: bool


class BaseIngredientNormaliser:
    """Call an OpenAI/Ollama-compatible chat endpoint to map product names to base ingredients."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        provider: str = "openai",
        api_key: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._provider = (provider or "openai").strip().lower()
        self._api_key = api_key
        self._temperature = max(0.0, float(temperature))
        self._max_tokens = max(1, int(max_tokens))
        self._timeout = max(0.1, float(timeout))
        self._transport = transport

    def normalise(self, items: Sequence[MasterListItem]) -> Dict[int, str]:
        """Return ``{item_id: base_ingredient}`` for the items the model answered.

        Raises ``ValueError`` when the response is not the expected JSON shape.
        """

        if not items:
            return {}

        items_json = json.dumps(
            [{"id": item.id, "name": item.name} for item in items], ensure_ascii=False, indent=2
        )
        content = self._execute_chat(NORMALISE_USER_PROMPT.format(items_json=items_json))

        json_blob = _extract_json_blob(content)
        try:
            parsed = json.loads(json_blob)
        except json.JSONDecodeError as exc:
            snippet = json_blob.strip().replace("\n", " ")[:200]
            raise ValueError(
                f"Normalisation LLM returned invalid JSON: {exc}: payload={snippet}"
            ) from exc

        entries = parsed.get("items") if isinstance(parsed, dict) else None
        if not isinstance(entries, list):
            raise ValueError("Normalisation LLM response is missing the items array.")

        known_ids = {item.id for item in items}
        results: Dict[int, str] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                item_id = int(entry.get("id"))
            except (TypeError, ValueError):
                continue
            base = entry.get("base_ingredient") or entry.get("baseIngredient") or ""
            base = str(base).strip().lower()
            if item_id in known_ids and base:
                results[item_id] = base
        return results

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            return {}
        return {"Authorization": f"Bearer {self._api_key}"}

    def _execute_chat(self, user: str) -> str:
        messages = [
            {"role": "system", "content": NORMALISE_SYSTEM_PROMPT},
            {"role": "user", "content": user},
        ]
        if self._provider == "ollama":
            endpoint = self._base_url
            if not endpoint.endswith("/api/chat"):
                endpoint = f"{endpoint}/api/chat"
            payload = {
                "model": self._model,
                "messages": messages,
                "stream": False,
                "format": "json",
                "options": {
                    "temperature": self._temperature,
                    "num_predict": self._max_tokens,
                },
            }
            body = self._post(endpoint, payload)
            message = body.get("message") or {}
            content = (message.get("content") or "").strip()
            if not content:
                raise ValueError("Ollama normalisation response did not include content.")
            return content

        endpoint = self._base_url
        if not endpoint.endswith("/chat/completions"):
            endpoint = f"{endpoint}/chat/completions"
        payload = {
            "model": self._model,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
            "response_format": {"type": "json_object"},
            "messages": messages,
        }
        body = self._post(endpoint, payload)
        choices = body.get("choices") or []
        if not choices:
            raise ValueError("Normalisation LLM returned no choices.")
        message = choices[0].get("message") or {}
        content = (message.get("content") or "").strip()
        if not content:
            raise ValueError("Normalisation LLM returned an empty response.")
        return content

    def _post(self, endpoint: str, payload: dict[str, object]) -> dict:
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            response = client.post(endpoint, json=payload, headers=self._headers())
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("Normalisation LLM returned an unexpected payload.")
        return body


def _extract_json_blob(text: str) -> str:
    match = _JSON_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1].strip()
    return text.strip()


def build_normaliser(settings: Settings | None = None) -> BaseIngredientNormaliser | None:
    """Create a normaliser when a chat completion endpoint is configured."""

    settings = settings or get_settings()
    if not settings.llm_base_url:
        logger.debug("No LLM base URL configured; base ingredient normalisation disabled.")
        return None

    return BaseIngredientNormaliser(
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        provider=settings.llm_provider,
        api_key=settings.llm_api_key or settings.embedding_api_key,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )


def _batches(items: List[MasterListItem], size: int) -> List[List[MasterListItem]]:
    size = max(1, int(size))
    return [items[offset : offset + size] for offset in range(0, len(items), size)]


def backfill_base_ingredients(
    normaliser: BaseIngredientNormaliser,
    batch_size: int = DEFAULT_BATCH_SIZE,
    dry_run: bool = False,
) -> BackfillReport:
    """Normalise every master item that has no base ingredient yet."""

    items = master_list_store.list_items_missing_base_ingredient()
    if not items:
        logger.info("All master list items already have a base ingredient.")
        return BackfillReport(processed=0, batches=0, dry_run=dry_run)

    batches = _batches(items, batch_size)
    processed = 0
    for number, batch in enumerate(batches, start=1):
        logger.info("Normalising batch %s/%s items=%s", number, len(batches), len(batch))
        results = normaliser.normalise(batch)
        for item in batch:
            base = results.get(item.id)
            if base is None:
                logger.warning("No base ingredient returned for %r (id=%s)", item.name, item.id)
                continue
            logger.info("%r -> %r", item.name, base)
            if not dry_run:
                master_list_store.set_base_ingredient(item.id, base)
            processed += 1

    logger.info(
        "Base ingredient backfill done processed=%s batches=%s dry_run=%s",
        processed,
        len(batches),
        dry_run,
    )
    return BackfillReport(processed=processed, batches=len(batches), dry_run=dry_run)


def backfill_embeddings(
    embedder: Embedder,
    batch_size: int = DEFAULT_BATCH_SIZE,
    dry_run: bool = False,
) -> BackfillReport:
    """Embed the base ingredient of every master item that has no vector yet."""

    items = master_list_store.list_items_missing_embedding()
    if not items:
        logger.info("All items with a base ingredient already have embeddings.")
        return BackfillReport(processed=0, batches=0, dry_run=dry_run)

    batches = _batches(items, batch_size)
    processed = 0
    for number, batch in enumerate(batches, start=1):
        logger.info("Embedding batch %s/%s items=%s", number, len(batches), len(batch))
        vectors = embedder([item.base_ingredient for item in batch])
        for item, vector in zip(batch, vectors):
            logger.debug("%r (base %r) -> %s-dim vector", item.name, item.base_ingredient, len(vector))
            if not dry_run:
                master_list_store.set_embedding(item.id, vector)
        processed += len(batch)

    logger.info(
        "Embedding backfill done processed=%s batches=%s dry_run=%s",
        processed,
        len(batches),
        dry_run,
    )
    return BackfillReport(processed=processed, batches=len(batches), dry_run=dry_run)


def refresh_master_item(
    item_id: int,
    normaliser: BaseIngredientNormaliser | None,
    embedder: Embedder | None,
) -> MasterListItem | None:
    """Recompute one item's base ingredient and embedding after a create or rename.

    Best effort: failures are logged and the item is left for the backfill jobs.
    """

    item = master_list_store.get_master_item(item_id)
    if item is None:
        return None

    try:
        if normaliser is not None and not item.base_ingredient:
            base = normaliser.normalise([item]).get(item.id)
            if base:
                item = master_list_store.set_base_ingredient(item.id, base)
        if embedder is not None and item.base_ingredient and not item.embedding:
            vectors = embedder([item.base_ingredient])
            if vectors:
                item = master_list_store.set_embedding(item.id, vectors[0])
    except Exception as exc:
        logger.warning("Failed to refresh master list item %s: %s", item_id, exc)
    return item


__all__ = [
    "BackfillReport",
    "BaseIngredientNormaliser",
    "backfill_base_ingredients",
    "backfill_embeddings",
    "build_normaliser",
    "refresh_master_item",
]
