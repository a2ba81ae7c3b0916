"""
Estimate AP positions from their observations.

- Pass 1: spatial deduplication of each AP's observations
- Pass 2: method selection by observation count
  (single fix / weighted centroid / trilateration)
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Optional, Sequence, Tuple

from hcxmap.analysis.config import LocatorConfig
from hcxmap.analysis.types import AccessPoint, Observation, Position
from hcxmap.utils.geo import haversine, trilaterate, weighted_centroid
from hcxmap.utils.log import get_logger

logger = get_logger(__name__)

METHOD_SINGLE = "single"
METHOD_CENTROID = "weighted_centroid"
METHOD_TRILATERATION = "trilateration"


def dedupe(observations: Sequence[Observation], min_distance_m: float = 5.0) -> List[Observation]:
    """
    Keep a strongest-first subset of observations spaced at least
    `min_distance_m` apart.

    Candidates are visited by descending signal; each is kept only if it is
    at least `min_distance_m` from every observation kept so far. The
    strongest observation is always kept.
    """
    if len(observations) <= 1:
        return list(observations)

    ranked = sorted(observations, key=lambda o: o.signal_strength, reverse=True)
    kept = [ranked[0]]
    for cand in ranked[1:]:
        here = (cand.position.latitude, cand.position.longitude)
        if all(
            haversine(here, (k.position.latitude, k.position.longitude)) >= min_distance_m
            for k in kept
        ):
            kept.append(cand)
    return kept


def estimate_position(
    observations: Sequence[Observation],
    cfg: Optional[LocatorConfig] = None,
) -> Tuple[Optional[Position], Optional[str]]:
    """
    Pick and run an estimator based on the number of observations.

    Returns
    -------
    (position, method)
        ``(None, None)`` without observations; the lone observation's
        position for one; the weighted centroid for two; trilateration
        for three or more.
    """
    cfg = cfg or LocatorConfig.default()
    match len(observations):
        case 0:
            return None, None
        case 1:
            return observations[0].position, METHOD_SINGLE
        case 2:
            return weighted_centroid(observations), METHOD_CENTROID
        case _:
            est = trilaterate(
                observations,
                learning_rate=cfg.learning_rate,
                convergence_threshold=cfg.convergence_threshold,
                max_iterations=cfg.max_iterations,
            )
            return est, METHOD_TRILATERATION


def observation_statistics(aps: Iterable[AccessPoint]) -> Counter:
    """
    Count APs by the estimator their observation count will select and warn
    about the ones whose estimate is likely to be coarse.
    """
    counts: Counter = Counter()
    for ap in aps:
        n = len(ap.observations)
        if n == 1:
            counts[METHOD_SINGLE] += 1
        elif n == 2:
            counts[METHOD_CENTROID] += 1
        elif n >= 3:
            counts[METHOD_TRILATERATION] += 1

    if counts[METHOD_SINGLE]:
        logger.warning(
            "%d access points have only a single observation. "
            "Position estimates for these APs may be inaccurate.",
            counts[METHOD_SINGLE],
        )
    if counts[METHOD_CENTROID]:
        logger.warning(
            "%d access points have only two observations. "
            "Position estimates for these APs may be inaccurate.",
            counts[METHOD_CENTROID],
        )
    logger.info(
        "Using trilateration for %d access points with three or more observations.",
        counts[METHOD_TRILATERATION],
    )
    return counts


class EstimatorPipeline:
    """
    Deduplicate every AP's observations in place, then estimate its position.
    """
    def __init__(self, cfg: Optional[LocatorConfig] = None) -> None:
        self.cfg = cfg or LocatorConfig.default()

    def run(self, aps: Iterable[AccessPoint]) -> Counter:
        aps = list(aps)
        logger.info("Estimating positions for %d access points", len(aps))
        observation_statistics(aps)

        methods: Counter = Counter()
        for ap in aps:
            before = len(ap.observations)
            ap.observations = dedupe(ap.observations, self.cfg.min_obs_distance_m)
            ap.estimated_position, ap.position_method = estimate_position(ap.observations, self.cfg)
            methods[ap.position_method] += 1
            logger.debug(
                "AP %s: %d -> %d observations, position %s using %s",
                ap.mac_str,
                before,
                len(ap.observations),
                "None" if ap.estimated_position is None
                else f"{ap.estimated_position.latitude:.6f}, {ap.estimated_position.longitude:.6f}",
                ap.position_method or "unknown",
            )
        logger.info("Estimation complete: %s", dict(methods))
        return methods
