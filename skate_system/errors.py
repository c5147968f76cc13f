"""
Skate System Error Taxonomy
Failure conditions raised by sensor sources, calibration and persistence

None of these is allowed to terminate a session that is already tracking:
each one degrades a data source while the pipeline keeps running.
"""


class TrackerError(Exception):
    """Base class for all skate_system errors"""


class PermissionDenied(TrackerError):
    """The user (or the OS) refused access to the motion sensor"""


class SensorUnavailable(TrackerError):
    """No inertial samples could be obtained (missing hardware or silent sensor)"""


class ClockAnomaly(TrackerError):
    """
    A sample's time step is outside the plausible range.

    Only used to describe the condition; the conditioner counts and skips
    such samples instead of raising.
    """

    def __init__(self, dt: float):
        super().__init__(f"Implausible sample interval dt={dt:.3f}s")
        self.dt = dt


class LocationUnavailable(TrackerError):
    """No location fixes can be obtained; motion tracking continues without them"""


class PersistenceCorrupt(TrackerError):
    """Stored session history could not be parsed"""
