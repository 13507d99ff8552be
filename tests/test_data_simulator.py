import math

import numpy as np
import pytest

from bodysync.core.combiners import CombinedMultiplexer
from bodysync.core.data_simulator import POSTURE_PHASES, DataSimulator
from bodysync.features import SkeletonFeatures, StablePosture


@pytest.fixture
def simulator():
    return DataSimulator({'noise_std': 0.0})


def test_session_counts(simulator):
    events = simulator.generate_session(2.0)
    counts = {stream_id: 0 for stream_id in (0, 1, 2)}
    for _, stream_id, _ in events:
        counts[stream_id] += 1

    assert counts == {0: 120, 1: 60, 2: 1}
    assert simulator.get_statistics()['total_items'] == 181


def test_session_ordering(simulator):
    events = simulator.generate_session(1.0)
    times = [t for t, _, _ in events]

    assert times == sorted(times)
    # 同一时刻次流在主流之前
    assert [stream_id for _, stream_id, _ in events[:3]] == [2, 1, 0]


def test_invalid_arguments(simulator):
    with pytest.raises(ValueError):
        simulator.generate_session(0.0)
    with pytest.raises(ValueError):
        simulator.generate_session(1.0, stream_ids=(5,))
    with pytest.raises(ValueError):
        DataSimulator({'sensor_rate_hz': 0})


def test_posture_phases(simulator):
    assert simulator.phase_index(5.0) == 1
    assert POSTURE_PHASES[1] == StablePosture.SITTING
    assert simulator.manual_annotation(5.0).body_posture.state is StablePosture.SITTING

    left, right, _ = simulator.body_state(5.0)
    assert left == pytest.approx(math.pi / 2)
    assert right == pytest.approx(math.pi / 2)

    left, right, _ = simulator.body_state(10.0)
    assert left == pytest.approx(math.pi / 4)


def test_walking_swings_legs_in_opposition(simulator):
    left, right, _ = simulator.body_state(16.25)

    assert left == pytest.approx(-right)
    assert left != 0.0


def test_skeleton_leg_angle_follows_flexion(simulator):
    standing = SkeletonFeatures(simulator.skeleton_snapshot(0.0))
    sitting = SkeletonFeatures(simulator.skeleton_snapshot(5.0))

    change = abs(sitting.left_leg_to_torso_angle - standing.left_leg_to_torso_angle)
    assert change == pytest.approx(math.pi / 2, abs=0.05)


def test_sensor_pitch_follows_flexion(simulator):
    standing = simulator.sensor_reading(0.0)
    sitting = simulator.sensor_reading(5.0)

    assert abs(sitting.rotation_pitch - standing.rotation_pitch) == pytest.approx(math.pi / 2, abs=0.05)


def test_determinism_and_reset():
    first = DataSimulator({'random_seed': 7})
    second = DataSimulator({'random_seed': 7})
    a = first.sensor_reading(1.0).extract_values()

    np.testing.assert_array_equal(a, second.sensor_reading(1.0).extract_values())

    first.reset()
    np.testing.assert_array_equal(a, first.sensor_reading(1.0).extract_values())
    assert first.items_generated[0] == 1


def test_realtime_stream_yields_items():
    simulator = DataSimulator({'sensor_rate_hz': 100.0})
    items = list(simulator.simulate_realtime_stream([0], duration_s=0.05))

    assert len(items) == 5
    assert all(stream_id == 0 for stream_id, _ in items)


def test_session_through_multiplexer(simulator):
    now = {'ms': 0.0}
    multiplexer = CombinedMultiplexer(num_learning_samples=100, clock=lambda: now['ms'])
    for t, stream_id, item in simulator.generate_session(2.0):
        now['ms'] = t * 1000.0
        multiplexer.push(stream_id, item)

    assert multiplexer.frames_emitted == 120
    assert multiplexer.learner.is_trained
