import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "actuators"))
sys.path.insert(0, str(ROOT / "packages" / "metrics"))

from clusterdial_actuators import ActuatorDriver, PinTable
from clusterdial_core.display import DisplayMapper, is_critical, pointer_angle, worst
from clusterdial_metrics import ClusterSnapshot


class FakeTransport:
    def __init__(self):
        self.levels = {}
        self.duties = []
        self.is_open = True

    def open(self, pins, pwm_hz=50, numbering="board"):
        self.is_open = True

    def close(self):
        self.is_open = False

    def write(self, pin, high):
        self.levels[pin] = high

    def set_duty(self, duty):
        self.duties.append(duty)

    def stop_pwm(self):
        pass


class WorstMetricTests(unittest.TestCase):
    def test_picks_highest(self):
        snap = ClusterSnapshot.from_percents(cpu=10, mem=20, disk=80)
        self.assertEqual(worst(snap).name, "disk")

    def test_tie_goes_to_earliest(self):
        snap = ClusterSnapshot.from_percents(cpu=50, mem=90, disk=90)
        self.assertEqual(worst(snap).name, "memory")

    def test_three_way_tie_is_cpu(self):
        snap = ClusterSnapshot.from_percents(cpu=40, mem=40, disk=40)
        self.assertEqual(worst(snap).name, "cpu")

    def test_cpu_disk_tie(self):
        snap = ClusterSnapshot.from_percents(cpu=70, mem=10, disk=70)
        self.assertEqual(worst(snap).name, "cpu")


class PointerAngleTests(unittest.TestCase):
    def test_reference_points(self):
        self.assertEqual(pointer_angle(0), 180)
        self.assertEqual(pointer_angle(100), 0)
        self.assertEqual(pointer_angle(50), 90)
        self.assertEqual(pointer_angle(33), 120)
        self.assertEqual(pointer_angle(1), 178)

    def test_monotonic_and_in_range(self):
        angles = [pointer_angle(p) for p in range(101)]
        for prev, cur in zip(angles, angles[1:]):
            self.assertLessEqual(cur, prev)
        self.assertTrue(all(0 <= a <= 180 for a in angles))


class CriticalThresholdTests(unittest.TestCase):
    def test_inclusive_at_95(self):
        self.assertFalse(is_critical(94))
        self.assertTrue(is_critical(95))
        self.assertTrue(is_critical(100))


class DisplayMapperTests(unittest.TestCase):
    def setUp(self):
        self.pins = PinTable()
        self.transport = FakeTransport()
        self.driver = ActuatorDriver(self.transport, pins=self.pins, sleep=lambda _s: None)
        self.mapper = DisplayMapper(self.driver, self.pins)

    def _lit_indicators(self):
        return [pin for pin in self.pins.indicator_pins() if self.transport.levels.get(pin)]

    def test_exactly_one_indicator_regardless_of_prior_state(self):
        for pin in self.pins.light_pins():
            self.transport.levels[pin] = True
        snap = ClusterSnapshot.from_percents(cpu=10, mem=60, disk=20)
        self.mapper.display(worst(snap))
        self.assertEqual(self._lit_indicators(), [self.pins.memory])

    def test_alarm_tracks_selected_percent(self):
        snap = ClusterSnapshot.from_percents(cpu=95, mem=10, disk=10)
        self.mapper.display(snap.cpu)
        self.assertTrue(self.transport.levels[self.pins.alarm])

        self.mapper.display(snap.mem)
        self.assertFalse(self.transport.levels[self.pins.alarm])

    def test_pointer_sweeps_then_releases(self):
        snap = ClusterSnapshot.from_percents(cpu=50, mem=0, disk=0)
        self.mapper.display(snap.cpu)
        self.assertEqual(self.transport.duties, [90 / 18 + 2.5, 0])
        self.assertEqual(self.driver.last_angle, 90)

    def test_display_is_idempotent_for_lights(self):
        snap = ClusterSnapshot.from_percents(cpu=10, mem=20, disk=97)
        self.mapper.display(snap.disk)
        first = dict(self.transport.levels)
        self.mapper.display(snap.disk)
        self.assertEqual(self.transport.levels, first)
        self.assertEqual(self.driver.last_angle, pointer_angle(97))


if __name__ == "__main__":
    unittest.main()
