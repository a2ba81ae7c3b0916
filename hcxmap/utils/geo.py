# hcxmap/utils/geo.py

"""
Geospatial utility functions: great-circle distance, path-loss ranging and
the two signal-weighted position estimators.
"""

import math
from typing import Sequence, Tuple, Optional

from hcxmap.analysis.types import Observation, Position
from hcxmap.utils.log import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_M = 6378000.0

# planar metres per degree, used by the trilateration gradient
M_PER_DEG_LON = 111320.0  # scaled by cos(latitude)
M_PER_DEG_LAT = 110540.0


def haversine(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """
    Compute the great-circle distance between two points on the Earth.

    Parameters
    ----------
    a
        (latitude, longitude) of point A, in decimal degrees.
    b
        (latitude, longitude) of point B, in decimal degrees.

    Returns
    -------
    float
        Distance between A and B in metres.
    """
    lat1, lon1 = a
    lat2, lon2 = b
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lam = math.radians(lon2 - lon1)
    h = math.sin(d_phi/2)**2 + math.cos(phi1)*math.cos(phi2)*math.sin(d_lam/2)**2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def rssi_to_distance(
    rssi: float,
    rssi_at_1m: float = -35.0,
    path_loss_exponent: float = 2.5,
) -> float:
    """
    Estimate the transmitter distance (m) from a received signal strength
    using the log-distance path-loss model.

    Parameters
    ----------
    rssi
        Received signal strength in dBm.
    rssi_at_1m
        Expected signal strength at one metre from the transmitter.
    path_loss_exponent
        Environment-dependent attenuation exponent (2 is free space).
    """
    distance = 10 ** ((rssi_at_1m - rssi) / (10 * path_loss_exponent))
    logger.debug("Estimated distance for RSSI %d dBm: %.2f metres", rssi, distance)
    return distance


def centroid_weight(rssi: float) -> float:
    """Linear weight: -100 dBm maps to 0, -25 dBm to 100."""
    return max(0.0, (rssi + 100.0) / 75.0 * 100.0)


def trilateration_weight(rssi: float) -> float:
    """Squared, clamped weight: -100 dBm maps to 0, -30 dBm and above to 1."""
    w = min(max((rssi + 100.0) / 70.0, 0.0), 1.0)
    return w * w


def weighted_centroid(observations: Sequence[Observation]) -> Optional[Position]:
    """
    Signal-weighted mean of the observation positions.

    Falls back to the plain arithmetic mean when every observation carries
    zero weight (all signals at or below -100 dBm). The result is stamped
    with the first observation's timestamp.
    """
    if not observations:
        return None

    total_w = 0.0
    lat_w = lon_w = 0.0
    for o in observations:
        w = centroid_weight(o.signal_strength)
        total_w += w
        lat_w += o.position.latitude * w
        lon_w += o.position.longitude * w

    ts = observations[0].position.timestamp
    if total_w == 0.0:
        n = len(observations)
        return Position(
            latitude=sum(o.position.latitude for o in observations) / n,
            longitude=sum(o.position.longitude for o in observations) / n,
            timestamp=ts,
        )
    return Position(latitude=lat_w / total_w, longitude=lon_w / total_w, timestamp=ts)


def trilaterate(
    observations: Sequence[Observation],
    learning_rate: float = 0.001,
    convergence_threshold: float = 1e-6,
    max_iterations: int = 100,
) -> Optional[Position]:
    """
    Weighted least-squares position estimate solved by gradient descent.

    Starts at the weighted centroid and repeatedly moves the estimate so that
    its planar distance to each observation approaches that observation's
    path-loss distance. Observations with stronger signals pull harder.

    Parameters
    ----------
    observations
        At least three observations; fewer delegate to `weighted_centroid`.
    learning_rate
        Step scale applied to the normalized gradient.
    convergence_threshold
        Stop once both per-step updates (degrees) fall below this.
    max_iterations
        Hard cap on descent steps.

    Returns
    -------
    Optional[Position]
        Final estimate stamped with the first observation's timestamp.
    """
    if len(observations) < 3:
        return weighted_centroid(observations)

    initial = weighted_centroid(observations)
    est_lat, est_lon = initial.latitude, initial.longitude

    for step in range(max_iterations):
        grad_lat = grad_lon = total_w = 0.0
        for o in observations:
            cos_lat = math.cos(math.radians(est_lat))
            # near the poles the longitude scale collapses
            if abs(cos_lat) < 0.01:
                continue

            dx = (est_lon - o.position.longitude) * M_PER_DEG_LON * cos_lat
            dy = (est_lat - o.position.latitude) * M_PER_DEG_LAT
            calc_d = math.sqrt(dx * dx + dy * dy)
            if calc_d < 0.1:
                continue

            error = calc_d - o.distance
            w = trilateration_weight(o.signal_strength)
            grad_lat += w * error * dy / calc_d / M_PER_DEG_LAT
            grad_lon += w * error * dx / calc_d / (M_PER_DEG_LON * cos_lat)
            total_w += w

        if total_w == 0.0:
            logger.debug("Trilateration has no usable observations, keeping centroid")
            return initial

        update_lat = grad_lat / total_w * learning_rate
        update_lon = grad_lon / total_w * learning_rate
        est_lat -= update_lat
        est_lon -= update_lon

        if abs(update_lat) < convergence_threshold and abs(update_lon) < convergence_threshold:
            logger.debug("Trilateration converged after %d steps", step + 1)
            break

    return Position(
        latitude=est_lat,
        longitude=est_lon,
        timestamp=observations[0].position.timestamp,
    )
