# hcxmap/analysis/config.py

from dataclasses import dataclass


@dataclass
class LocatorConfig:
    """
    Tunable constants of the ranging and position-estimation stages.

    The defaults are empirical; none of them is derived from the capture.

    Attributes
    ----------
    rssi_at_1m
        Expected signal strength (dBm) one metre from an AP.
    path_loss_exponent
        Log-distance attenuation exponent.
    min_obs_distance_m
        Minimum spacing (m) between observations kept by deduplication.
    learning_rate
        Trilateration gradient step scale.
    convergence_threshold
        Trilateration stops once both updates (degrees) are below this.
    max_iterations
        Trilateration step cap.
    """
    rssi_at_1m:            float = -35.0
    path_loss_exponent:    float = 2.5
    min_obs_distance_m:    float = 5.0
    learning_rate:         float = 0.001
    convergence_threshold: float = 1e-6
    max_iterations:        int   = 100

    @classmethod
    def default(cls):
        """Preset used by the CLI."""
        return cls()
