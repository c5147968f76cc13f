"""
Tracker Processing Configuration
Thresholds for calibration, conditioning, gesture start and event detection
"""

from dataclasses import dataclass

TAXONOMY_TURNS = 'turns'  # skate-session surface: Turn + Impact
TAXONOMY_BOARD = 'board'  # skateboard surface: Ollie/Air/Slam + Grind + Pump


@dataclass
class TrackerConfig:
    """Processing parameters for one tracking pipeline"""

    # Event taxonomy for this product surface ('turns' or 'board')
    taxonomy: str = TAXONOMY_TURNS

    # Calibration
    calibration_seconds: float = 3.0
    calibration_smoothing: float = 0.8  # weight kept on the previous estimate

    # Conditioning
    gravity: float = 9.81                # m/s² per G
    min_projection_accel: float = 0.1    # m/s² - below this the yaw projection is undefined
    projection_tolerance: float = 0.5    # G away from 1 G before falling back to the frozen reference
    yaw_noise_floor: float = 2.0         # deg/s
    max_dt: float = 0.5                  # s - larger gaps are scheduling anomalies

    # Turn commit (move-then-settle)
    turn_moving_threshold: float = 5.0   # deg/s
    turn_stillness_seconds: float = 0.4
    turn_min_angle: float = 15.0         # degrees

    # Impact
    impact_threshold: float = 2.2        # G

    # Gesture trigger (double slap)
    slap_threshold: float = 2.0          # G
    slap_window_seconds: float = 1.2
    slap_min_gap_seconds: float = 0.15

    # Airtime
    freefall_threshold: float = 0.5      # G
    landing_threshold: float = 1.2       # G
    slam_threshold: float = 5.0          # G
    air_min_seconds: float = 0.35
    ollie_min_seconds: float = 0.1

    # Grind
    grind_rotation_threshold: float = 220.0  # deg/s
    grind_stable_g: float = 2.0
    grind_release_fraction: float = 0.8      # ends once rotation fell by this fraction
    grind_stall_speed: float = 1.0           # m/s
    stable_window: int = 5                   # samples averaged for the stable-G check

    # Pump
    pump_min_g: float = 1.3
    pump_max_g: float = 2.5
    pump_debounce_seconds: float = 0.3
    pump_idle_reset_seconds: float = 2.0

    # Same-kind events closer than this are merged
    dedupe_seconds: float = 0.5

    # Classifier
    classifier_acceptance: float = 0.8
    significant_intensity: float = 1.8   # G
    significant_rotation: float = 45.0   # deg/s
    significant_turn_angle: float = 15.0  # degrees
    rotation_weight: float = 100.0       # rotation difference is divided by this

    # Rolling classification
    activity_window: int = 40

    # Worker snapshots
    snapshot_hz: float = 10.0

    @property
    def snapshot_interval(self) -> float:
        """Seconds between throttled snapshot messages."""
        return 1.0 / self.snapshot_hz

    @classmethod
    def for_turns(cls) -> 'TrackerConfig':
        """
        Configuration for the skate-session surface.

        Emits Turn events (gravity-projected yaw, committed after settling)
        and instantaneous Impact events.
        """
        return cls(taxonomy=TAXONOMY_TURNS)

    @classmethod
    def for_board(cls) -> 'TrackerConfig':
        """
        Configuration for the skateboard surface.

        Emits airtime (ollie / air / slam), grind and pump events.
        """
        return cls(taxonomy=TAXONOMY_BOARD)
