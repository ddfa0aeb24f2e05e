"""Cosine similarity matching between ingredient and inventory vectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from mealcart.config import get_settings
from mealcart.models.ingredients import AggregatedItem, MatchResult
from mealcart.models.master_list import InventoryVector

NEAR_MISS_FLOOR = 0.75


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``; 0.0 when either is a zero vector."""

    left = np.asarray(a, dtype=float)
    right = np.asarray(b, dtype=float)
    if left.shape != right.shape:
        raise ValueError(f"Vector length mismatch: {left.shape[0]} != {right.shape[0]}")

    denominator = float(np.linalg.norm(left)) * float(np.linalg.norm(right))
    if denominator == 0.0:
        return 0.0
    score = float(np.dot(left, right)) / denominator
    return max(-1.0, min(1.0, score))


def find_best_matches(
    ingredient_vectors: Sequence[Sequence[float]],
    inventory: Sequence[InventoryVector],
    threshold: Optional[float] = None,
) -> List[MatchResult]:
    """Return the closest inventory entry for every ingredient vector.

    ``best_candidate`` is reported even when the score misses the threshold so
    callers can log near misses. On equal scores the earlier inventory entry
    wins.
    """

    if threshold is None:
        threshold = get_settings().similarity_threshold

    results: List[MatchResult] = []
    for vector in ingredient_vectors:
        best_score = -1.0
        best_candidate: Optional[str] = None
        for candidate in inventory:
            score = cosine_similarity(vector, candidate.embedding)
            if score > best_score:
                best_score = score
                best_candidate = candidate.name
        match = best_candidate if best_candidate is not None and best_score >= threshold else None
        results.append(
            MatchResult(match=match, best_score=best_score, best_candidate=best_candidate)
        )
    return results


@dataclass
class DeduplicationResult:
    items: List[AggregatedItem]
    embeddings: List[List[float]]
    merge_log: List[str] = field(default_factory=list)
    near_miss_log: List[str] = field(default_factory=list)


@dataclass
class _Cluster:
    indices: List[int]
    centroid: np.ndarray


def deduplicate_by_embedding(
    items: Sequence[AggregatedItem],
    embeddings: Sequence[Sequence[float]],
    threshold: Optional[float] = None,
) -> DeduplicationResult:
    """Merge aggregated items whose vectors point the same way.

    Each item joins the most similar existing cluster (compared against the
    cluster centroid) when the score reaches ``threshold``, otherwise it starts
    a new cluster. A merged cluster keeps its shortest name, the union of its
    sources in first-seen order, and that name's vector.
    """

    if len(items) != len(embeddings):
        raise ValueError(f"Got {len(embeddings)} embedding(s) for {len(items)} item(s)")
    if threshold is None:
        threshold = get_settings().deduplication_threshold
    if len(items) <= 1:
        return DeduplicationResult(
            items=[item.model_copy(deep=True) for item in items],
            embeddings=[list(vector) for vector in embeddings],
        )

    clusters: List[_Cluster] = []
    result = DeduplicationResult(items=[], embeddings=[])

    for index, (item, raw_vector) in enumerate(zip(items, embeddings)):
        vector = np.asarray(raw_vector, dtype=float)
        best_cluster = -1
        best_score = 0.0
        for position, cluster in enumerate(clusters):
            score = cosine_similarity(vector, cluster.centroid)
            if score > best_score:
                best_score = score
                best_cluster = position

        if best_cluster != -1 and best_score >= threshold:
            cluster = clusters[best_cluster]
            result.merge_log.append(
                f'"{item.name}" -> cluster {best_cluster} (score: {best_score:.4f})'
            )
            cluster.indices.append(index)
            cluster.centroid = np.mean(
                [np.asarray(embeddings[i], dtype=float) for i in cluster.indices], axis=0
            )
            continue

        if best_cluster != -1 and best_score >= NEAR_MISS_FLOOR:
            result.near_miss_log.append(
                f'"{item.name}" ~ cluster {best_cluster} (score: {best_score:.4f})'
            )
        clusters.append(_Cluster(indices=[index], centroid=vector))

    for cluster in clusters:
        canonical = cluster.indices[0]
        for index in cluster.indices:
            if len(items[index].name) < len(items[canonical].name):
                canonical = index

        sources: List[str] = []
        for index in cluster.indices:
            for source in items[index].sources:
                if source not in sources:
                    sources.append(source)

        result.items.append(AggregatedItem(name=items[canonical].name, sources=sources))
        result.embeddings.append(list(embeddings[canonical]))

    return result


__all__ = [
    "DeduplicationResult",
    "NEAR_MISS_FLOOR",
    "cosine_similarity",
    "deduplicate_by_embedding",
    "find_best_matches",
]
