import numpy as np
import pytest
import torch

from bodysync.core.supervised_learner import SupervisedLearner

SAMPLES = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0), (2.0, 3.0)]


def target(x1, x2):
    return [2.0 + 3.0 * x1 - x2, -x1]


def test_echoes_responses_until_trained():
    learner = SupervisedLearner(num_learning_samples=len(SAMPLES))

    for x in SAMPLES:
        output = learner.feed(target(*x), x)
        np.testing.assert_allclose(output, target(*x))
        assert not learner.is_trained

    # 样本数达到后的下一次调用触发拟合
    learner.feed([0.0, 0.0], [5.0, 5.0])
    assert learner.is_trained


def test_predicts_after_fit():
    learner = SupervisedLearner(num_learning_samples=len(SAMPLES))
    for x in SAMPLES:
        learner.feed(target(*x), x)
    learner.feed([0.0, 0.0], [0.0, 0.0])

    prediction = learner.feed([99.0, 99.0], [3.0, 1.0])

    np.testing.assert_allclose(prediction, target(3.0, 1.0), atol=1e-9)
    np.testing.assert_allclose(learner.coefficients[0].numpy(), [2.0, 3.0, -1.0], atol=1e-9)
    assert learner.regressors is None


def test_from_coefficients():
    learner = SupervisedLearner.from_coefficients(np.array([[1.0, 2.0]]))

    assert learner.is_trained
    np.testing.assert_allclose(learner.predict([3.0]), [7.0])
    np.testing.assert_allclose(learner.feed([0.0], [1.0]), [3.0])


def test_coefficients_accept_tensor():
    learner = SupervisedLearner(coefficients=torch.tensor([[0.5, 1.0, 1.0]]))

    np.testing.assert_allclose(learner.predict([1.0, 2.0]), [3.5])


def test_predict_before_training_raises():
    learner = SupervisedLearner(num_learning_samples=3)

    with pytest.raises(RuntimeError):
        learner.predict([1.0])


def test_dimension_mismatch_raises():
    learner = SupervisedLearner(num_learning_samples=3)
    learner.feed([1.0], [1.0, 2.0])

    with pytest.raises(ValueError):
        learner.feed([1.0], [1.0])

    trained = SupervisedLearner.from_coefficients([[1.0, 2.0]])
    with pytest.raises(ValueError):
        trained.predict([1.0, 2.0])


def test_invalid_construction():
    with pytest.raises(ValueError):
        SupervisedLearner(num_learning_samples=0)
    with pytest.raises(ValueError):
        SupervisedLearner(coefficients=np.array([1.0, 2.0]))


def test_learning_stats():
    learner = SupervisedLearner(num_learning_samples=2)
    learner.feed([1.0], [1.0])
    stats = learner.get_learning_stats()

    assert stats == {'is_trained': False, 'num_learning_samples': 2, 'samples_seen': 1}
