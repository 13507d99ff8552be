import math

import numpy as np
import pytest

from bodysync.core.sequence_analyzer import SequenceAnalyzer
from bodysync.features import (
    LearnerFeatures,
    ManualAnnotation,
    Posture,
    PostureState,
    SensorFeatures,
    SensorReading,
    SkeletonFeatures,
    SkeletonSnapshot,
    StablePosture,
    Transition,
)
from bodysync.features.geometry import quaternion_from_axis_angle


def sensor_values(q):
    return list(q) + [0.0] * 19


# ----------------------------------------------------------------------
# SensorReading
# ----------------------------------------------------------------------

def test_sensor_reading_derives_euler_angles():
    reading = SensorReading.from_sensor_values(sensor_values(quaternion_from_axis_angle([1.0, 0.0, 0.0], 0.3)))

    assert reading.rotation_pitch == pytest.approx(0.3)
    assert reading.rotation_roll == pytest.approx(0.0)
    assert reading.extract_values().shape == (26,)


def test_sensor_reading_requires_23_values():
    with pytest.raises(ValueError):
        SensorReading.from_sensor_values([0.0] * 26)


def test_quaternion_setter_recomputes_angles():
    reading = SensorReading.from_sensor_values(sensor_values([0.0, 0.0, 0.0, 1.0]))
    reading.quaternion = quaternion_from_axis_angle([1.0, 0.0, 0.0], -0.5)

    assert reading.rotation_pitch == pytest.approx(-0.5)


def test_sensor_reading_clone_is_independent():
    reading = SensorReading.from_sensor_values(sensor_values([0.0, 0.0, 0.0, 1.0]))
    reading.rotation_rate_x = 2.0
    reading.magnetometer_valid = True
    copy = reading.clone()
    copy.rotation_rate_x = 5.0

    assert reading.rotation_rate_x == 2.0
    assert copy.magnetometer_valid
    np.testing.assert_allclose(copy.rotation_rate, [5.0, 0.0, 0.0])


def test_sensor_reading_inject_checks_length():
    with pytest.raises(ValueError):
        SensorReading().inject_values(np.zeros(3))


# ----------------------------------------------------------------------
# SkeletonSnapshot / SkeletonFeatures
# ----------------------------------------------------------------------

def test_skeleton_extraction_divides_by_w():
    skeleton = SkeletonSnapshot.example()
    skeleton.w[0] = 2.0
    values = skeleton.extract_values()

    assert values.shape == (60,)
    np.testing.assert_allclose(values[0:3], [0.0, 0.135, 0.975])
    np.testing.assert_allclose(skeleton.joint('HipCenter'), [0.0, 0.135, 0.975])


def test_skeleton_clone_is_deep():
    skeleton = SkeletonSnapshot.example()
    copy = skeleton.clone()
    copy.positions[0, 0] = 9.0
    copy.tracked[0] = False

    assert skeleton.positions[0, 0] == 0.0
    assert skeleton.tracked[0]


def test_unknown_joint():
    with pytest.raises(ValueError):
        SkeletonSnapshot.joint_index('Tail')


def test_skeleton_features_of_standing_example():
    features = SkeletonFeatures(SkeletonSnapshot.example())

    assert features.shoulder_orientation == pytest.approx(0.0)
    assert features.left_leg_to_torso_angle == pytest.approx(features.right_leg_to_torso_angle)
    assert abs(features.left_leg_to_torso_angle - math.pi) < 0.3


def test_skeleton_features_need_tracked_joints():
    skeleton = SkeletonSnapshot.example()
    skeleton.tracked[SkeletonSnapshot.joint_index('KneeLeft')] = False
    features = SkeletonFeatures()

    assert not features.read_from_skeleton(skeleton)
    assert not features.read_from_skeleton(None)
    np.testing.assert_array_equal(features.extract_values(), np.zeros(3))


# ----------------------------------------------------------------------
# SensorFeatures / LearnerFeatures
# ----------------------------------------------------------------------

def test_sensor_features_read_from_analysis_result():
    analyzer = SequenceAnalyzer(3, 4)
    result = None
    for i in range(4):
        result = analyzer.next_values(float(i), 2.0 * i, -float(i))
    features = SensorFeatures()
    features.read_from_analysis_result(result)

    np.testing.assert_allclose(features.current, [3.0, 6.0, -3.0])
    np.testing.assert_allclose(features.means, [1.5, 3.0, -1.5])
    assert features.rotation_correlation_xy == pytest.approx(1.0)
    assert features.rotation_correlation_xz == pytest.approx(-1.0)
    np.testing.assert_allclose(features.energies, result.dominant_frequencies[:, 0])


def test_sensor_features_require_three_sequences():
    result = SequenceAnalyzer(2, 4).next_values(1.0, 2.0)

    with pytest.raises(ValueError):
        SensorFeatures().read_from_analysis_result(result)


def test_sensor_features_clone_keeps_heading():
    features = SensorFeatures()
    features.heading = 1.2
    features.rotation_x = 0.4

    copy = features.clone()
    assert copy.heading == 1.2
    assert copy.rotation_x == 0.4
    assert features.as_dict()['rotation_x'] == 0.4


def test_learner_features():
    features = LearnerFeatures()
    features.read_from_learner_results(np.array([1.0, 2.0, 3.0]), True)

    assert features.predicted_right_leg_angle == 2.0
    assert features.clone().is_trained


# ----------------------------------------------------------------------
# 人工标注
# ----------------------------------------------------------------------

def test_posture_ids_and_names():
    assert Posture(StablePosture.STANDING).id == 101
    assert Posture.from_id(11) == Posture(Transition.STANDING_UP)
    assert Posture.parse(' walking ').state is StablePosture.WALKING
    assert Posture(PostureState.NOT_ON_BODY).base_state is PostureState.NOT_ON_BODY
    assert len(set(Posture.state_names())) == 7
    assert len({Posture.from_id(100), Posture.from_id(100), Posture.from_id(0)}) == 2


def test_posture_errors():
    with pytest.raises(ValueError):
        Posture.from_id(5)
    with pytest.raises(ValueError):
        Posture.parse('flying')
    with pytest.raises(ValueError):
        Posture(PostureState.STABLE)


def test_manual_annotation_clone():
    annotation = ManualAnnotation(Posture(StablePosture.SITTING))
    copy = annotation.clone()
    copy.calibration_quaternion[0] = 1.0

    assert annotation.num_values == 0
    assert annotation.extract_values().shape == (0,)
    assert copy.body_posture == annotation.body_posture
    np.testing.assert_allclose(annotation.calibration_quaternion, [0.0, 0.0, 0.0, 1.0])
