"""One-dimensional clustering used to recover rows and columns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

# pyright: reportUnknownMemberType=false
# pyright: reportUntypedFunctionDecorator=false
import numba  # type: ignore
import numpy as np

GAP_EDGE = "edge"
GAP_CENTROID = "centroid"


def greedy_clusters(values: Sequence[float], tolerance: float) -> List[List[int]]:
    """Group values whose distance to the running cluster mean is small.

    Values are visited in ascending order; each joins the current cluster
    when it lies within ``tolerance`` of that cluster's mean, otherwise it
    starts a new one. Returns clusters of indices into ``values``, ordered
    by position.
    """
    order = sorted(range(len(values)), key=lambda i: (values[i], i))
    clusters: List[List[int]] = []
    total = 0.0
    for idx in order:
        v = float(values[idx])
        if clusters and abs(v - total / len(clusters[-1])) <= tolerance:
            clusters[-1].append(idx)
            total += v
        else:
            clusters.append([idx])
            total = v
    return clusters


@numba.jit(nopython=True, cache=True)
def kmeans_1d_numba(values, init, max_iter):  # type: ignore
    """Lloyd iterations over scalars. Ties go to the lower centroid index."""
    n = values.shape[0]
    k = init.shape[0]
    centroids = init.copy()
    labels = np.full(n, -1, dtype=np.int64)
    for _ in range(max_iter):
        changed = False
        for j in range(n):
            best = 0
            best_d = abs(values[j] - centroids[0])
            for c in range(1, k):
                d = abs(values[j] - centroids[c])
                if d < best_d:
                    best_d = d
                    best = c
            if labels[j] != best:
                labels[j] = best
                changed = True
        if not changed:
            break
        sums = np.zeros(k, dtype=np.float64)
        counts = np.zeros(k, dtype=np.int64)
        for j in range(n):
            sums[labels[j]] += values[j]
            counts[labels[j]] += 1
        for c in range(k):
            if counts[c] > 0:
                centroids[c] = sums[c] / counts[c]
    return centroids, labels


@dataclass(frozen=True)
class KMeansFit:
    """Result of one k-means run: ``labels[i]`` indexes ``centroids``."""

    k: int
    centroids: np.ndarray
    labels: np.ndarray
    score: float

    def members(self) -> List[List[int]]:
        """Indices per cluster, in centroid order. Empty clusters stay empty."""
        out: List[List[int]] = [[] for _ in range(self.k)]
        for i, label in enumerate(self.labels.tolist()):
            out[label].append(i)
        return out


def kmeans_1d(values: Sequence[float], k: int, max_iter: int = 100) -> KMeansFit:
    """Cluster scalars into ``k`` groups with deterministic quantile seeding.

    Seeds are spread over the distinct values, so ``k`` must not exceed the
    number of distinct values. Centroids come back sorted ascending.
    """
    arr = np.asarray(values, dtype=np.float64)
    uniq = np.unique(arr)
    if k < 1 or k > uniq.shape[0]:
        raise ValueError(f"k={k} needs between 1 and {uniq.shape[0]} clusters")
    seeds = np.array(
        [uniq[min(int((i + 0.5) * uniq.shape[0] / k), uniq.shape[0] - 1)] for i in range(k)],
        dtype=np.float64,
    )
    centroids, labels = kmeans_1d_numba(arr, seeds, max_iter)

    order = np.argsort(centroids, kind="stable")
    remap = np.empty(k, dtype=np.int64)
    remap[order] = np.arange(k)
    return KMeansFit(k=k, centroids=centroids[order], labels=remap[labels], score=0.0)


def score_fit(
    values: Sequence[float],
    fit: KMeansFit,
    *,
    small_size: int = 3,
    penalty: float = 5.0,
    gap: str = GAP_EDGE,
) -> float:
    """Elbow-style score: separation minus spread minus small-cluster penalty.

    Separation is the mean gap between neighbouring clusters. With
    ``gap="edge"`` it is measured from the last member of one cluster to
    the first member of the next; with ``gap="centroid"`` between centroids.
    Spread is the mean population standard deviation of the clusters.
    """
    arr = np.asarray(values, dtype=np.float64)
    groups = [arr[idx] for idx in fit.members()]
    filled = [g for g in groups if g.size]

    gaps = []
    for left, right in zip(filled, filled[1:]):
        if gap == GAP_CENTROID:
            gaps.append(float(right.mean() - left.mean()))
        else:
            gaps.append(max(0.0, float(right.min() - left.max())))
    mean_gap = float(np.mean(gaps)) if gaps else 0.0
    mean_std = float(np.mean([g.std() for g in filled])) if filled else 0.0
    small = sum(1 for g in groups if g.size < small_size)
    return mean_gap - mean_std - penalty * small


def best_kmeans(
    values: Sequence[float],
    max_k: int,
    *,
    min_k: int = 2,
    small_size: int = 3,
    penalty: float = 5.0,
    gap: str = GAP_EDGE,
) -> Optional[KMeansFit]:
    """Try every k in ``[min_k, max_k]`` and keep the best scoring fit.

    Returns ``None`` when there are fewer than ``min_k`` distinct values.
    Ties keep the smaller k.
    """
    distinct = int(np.unique(np.asarray(values, dtype=np.float64)).shape[0])
    upper = min(max_k, distinct)
    best: Optional[KMeansFit] = None
    for k in range(min_k, upper + 1):
        fit = kmeans_1d(values, k)
        score = score_fit(values, fit, small_size=small_size, penalty=penalty, gap=gap)
        if best is None or score > best.score:
            best = KMeansFit(k=fit.k, centroids=fit.centroids, labels=fit.labels, score=score)
    return best


__all__ = [
    "GAP_CENTROID",
    "GAP_EDGE",
    "KMeansFit",
    "best_kmeans",
    "greedy_clusters",
    "kmeans_1d",
    "score_fit",
]
