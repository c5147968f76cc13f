"""
IMU Source Configuration
Hardware (MPU6050) and synthetic motion source parameters
"""

from dataclasses import dataclass
from typing import Optional

SOURCE_HARDWARE = 'hardware'
SOURCE_SYNTHETIC = 'synthetic'


@dataclass
class IMUConfig:
    """Motion source configuration parameters"""

    # Source selection
    source: str = SOURCE_HARDWARE  # 'hardware' or 'synthetic'
    allow_synthetic_fallback: bool = True

    # Hardware settings
    i2c_bus: int = 1
    i2c_address: int = 0x68

    # Sampling settings
    sample_rate: int = 100  # Hz
    collection_interval: float = 0.01  # 1/100 = 10ms between samples

    # Accelerometer settings
    accel_range: int = 0x08  # ±4g range (register value)
    accel_sensitivity: float = 8192.0  # LSB/g for ±4g range
    gravity: float = 9.81  # m/s² conversion factor

    # Gyroscope settings
    gyro_range: int = 0x10  # ±1000°/s range (register value)
    gyro_sensitivity: float = 32.8  # LSB/(°/s) for ±1000°/s range

    # Synthetic source settings
    seed: Optional[int] = None
    accel_noise: float = 0.4  # m/s² standard deviation of rolling vibration
    gyro_noise: float = 0.5  # °/s standard deviation
    realtime: bool = True  # pace synthetic samples at sample_rate

    @classmethod
    def for_hardware(cls) -> 'IMUConfig':
        """
        Create a configuration for a real MPU6050 on the I2C bus.

        Returns:
            IMUConfig with source='hardware'.
        """
        return cls(source=SOURCE_HARDWARE)

    @classmethod
    def for_synthetic(cls, seed: Optional[int] = 0, realtime: bool = True) -> 'IMUConfig':
        """
        Create a configuration for the synthetic motion source.

        The same seed always produces the same sample sequence.

        Returns:
            IMUConfig with source='synthetic' and no hardware fallback.
        """
        return cls(
            source=SOURCE_SYNTHETIC,
            allow_synthetic_fallback=False,
            seed=seed,
            realtime=realtime,
        )
