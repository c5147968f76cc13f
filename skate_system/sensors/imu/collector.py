"""
MPU6050 Motion Source
Raw accelerometer and gyroscope samples pushed to a sink callback
"""

import logging
import time
import threading
from typing import Callable, Optional, TYPE_CHECKING

import smbus2

from skate_system.errors import PermissionDenied, SensorUnavailable
from skate_system.models import SensorSample

from .config import IMUConfig

if TYPE_CHECKING:
    from skate_system.coordinator import CentralClock

logger = logging.getLogger(__name__)

# Register map
PWR_MGMT_1 = 0x6B
ACCEL_CONFIG = 0x1C
GYRO_CONFIG = 0x1B
ACCEL_XOUT_H = 0x3B
GYRO_XOUT_H = 0x43


class MPU6050Collector:
    """
    MPU6050 motion source.

    Reads acceleration and rotation rate over I2C and pushes one
    SensorSample per reading to the sink. The sink must not block.

    Axis mapping to device-motion rotation rates:
    alpha is rotation about z, beta about x, gamma about y.
    """

    def __init__(
            self,
            clock: 'CentralClock',
            sink: Callable[[SensorSample], None],
            config: Optional[IMUConfig] = None
    ):
        self.clock = clock
        self.sink = sink
        self.config = config if config else IMUConfig.for_hardware()

        self.bus = None

        self.is_running = False
        self.collection_thread = None
        self.stop_event = threading.Event()

        self.sample_count = 0
        self.read_errors = 0

        logger.info("MPU6050 collector initialized")

    def start(self):
        """
        Open the I2C bus, configure the MPU6050 and start the collection thread.

        Raises:
            PermissionDenied: if the I2C device node is not accessible
            SensorUnavailable: if there is no bus or no sensor answering on it
        """
        if self.is_running:
            logger.warning("MPU6050 collector already running")
            return

        try:
            logger.info("Initializing MPU6050 sensor...")
            self.bus = smbus2.SMBus(self.config.i2c_bus)

            # Wake up (disable sleep mode)
            self.bus.write_byte_data(self.config.i2c_address, PWR_MGMT_1, 0x00)
            time.sleep(0.1)

            self.bus.write_byte_data(self.config.i2c_address, ACCEL_CONFIG, self.config.accel_range)
            self.bus.write_byte_data(self.config.i2c_address, GYRO_CONFIG, self.config.gyro_range)
            time.sleep(0.1)
        except PermissionError as e:
            self._close_bus()
            logger.error(f"✗ No permission for I2C bus {self.config.i2c_bus}: {e}")
            raise PermissionDenied(f"I2C bus {self.config.i2c_bus}: {e}") from e
        except OSError as e:
            self._close_bus()
            logger.error(f"✗ MPU6050 not available: {e}")
            raise SensorUnavailable(
                f"MPU6050 at 0x{self.config.i2c_address:02X} on bus {self.config.i2c_bus}: {e}"
            ) from e

        logger.info(f"✓ MPU6050 ready at address 0x{self.config.i2c_address:02X}")

        self.is_running = True
        self.stop_event.clear()
        self.sample_count = 0
        self.read_errors = 0

        self.collection_thread = threading.Thread(
            target=self._collection_loop,
            name="MPU6050-Collection-Thread",
            daemon=True
        )
        self.collection_thread.start()

        logger.info("✓ MPU6050 data collection started successfully")

    def stop(self):
        if not self.is_running:
            logger.warning("MPU6050 collector not running")
            return

        logger.info("Stopping MPU6050 data collection...")
        self.stop_event.set()

        if self.collection_thread and self.collection_thread.is_alive():
            self.collection_thread.join(timeout=5)

        self._close_bus()
        self.is_running = False
        logger.info(f"✓ MPU6050 stopped after {self.sample_count} samples")

    def _close_bus(self):
        if self.bus:
            self.bus.close()
            self.bus = None

    def _collection_loop(self):
        logger.info("MPU6050 collection loop started")

        while not self.stop_event.is_set():
            try:
                sample = self.read_sample()
            except OSError as e:
                self.read_errors += 1
                logger.error(f"Error reading MPU6050: {e}")
                time.sleep(0.1)
                continue

            self.sink(sample)
            self.sample_count += 1

            time.sleep(self.config.collection_interval)

        logger.info("MPU6050 collection loop stopped")

    def read_sample(self) -> SensorSample:
        """Read one burst of acceleration (m/s²) and rotation rate (°/s)."""
        cfg = self.config
        accel_scale = cfg.gravity / cfg.accel_sensitivity

        ax = self._read_word_2c(ACCEL_XOUT_H) * accel_scale
        ay = self._read_word_2c(ACCEL_XOUT_H + 2) * accel_scale
        az = self._read_word_2c(ACCEL_XOUT_H + 4) * accel_scale

        gx = self._read_word_2c(GYRO_XOUT_H) / cfg.gyro_sensitivity
        gy = self._read_word_2c(GYRO_XOUT_H + 2) / cfg.gyro_sensitivity
        gz = self._read_word_2c(GYRO_XOUT_H + 4) / cfg.gyro_sensitivity

        return SensorSample(
            ax=ax, ay=ay, az=az,
            rot_alpha=gz, rot_beta=gx, rot_gamma=gy,
            t=self.clock.now(),
        )

    def _read_word_2c(self, reg: int) -> int:
        """
        Read signed 16-bit value from I2C register

        Args:
            reg: Register address (high byte)

        Returns:
            Signed 16-bit integer value
        """
        high = self.bus.read_byte_data(self.config.i2c_address, reg)
        low = self.bus.read_byte_data(self.config.i2c_address, reg + 1)
        val = (high << 8) + low

        if val >= 0x8000:
            return -((65535 - val) + 1)
        return val

    def get_status(self) -> dict:
        return {
            'sensor_type': 'MPU6050',
            'source': self.config.source,
            'is_running': self.is_running,
            'samples_collected': self.sample_count,
            'read_errors': self.read_errors,
        }

    def __repr__(self):
        status = "running" if self.is_running else "stopped"
        return f"<MPU6050Collector(status={status})>"
