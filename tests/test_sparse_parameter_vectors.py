import io

import pytest

from turbolearn.classifier.sparse_parameter_vectors import \
    SparseParameterVector, SparseLabeledParameterVector, DenseLabelWeights


def test_absent_key_contributes_nothing():
    weights = SparseParameterVector()
    assert weights.get(123) == 0.
    assert not weights.exists(123)
    assert len(weights) == 0


def test_add_accumulates_and_tracks_norm():
    weights = SparseParameterVector()
    assert weights.add(7, 1.0)
    assert weights.add(7, -0.4)
    assert weights.get(7) == pytest.approx(0.6)
    assert weights.get_squared_norm() == pytest.approx(0.36)


def test_zero_weight_is_distinct_from_absent():
    weights = SparseParameterVector()
    weights.add(3, 0.)
    assert weights.exists(3)
    assert weights.get(3) == 0.
    assert not weights.exists(4)


def test_stop_growth_rejects_new_keys():
    weights = SparseParameterVector()
    weights.add(1, 2.)
    weights.stop_growth()
    weights.stop_growth()

    assert not weights.add(2, 1.)
    assert not weights.exists(2)
    assert weights.get(2) == 0.
    assert len(weights) == 1

    # existing keys can still be updated
    assert weights.add(1, 1.)
    assert weights.get(1) == pytest.approx(3.)

    weights.allow_growth()
    weights.allow_growth()
    assert weights.add(2, 1.)
    assert weights.exists(2)


def test_scale_is_lazy_and_renormalizes():
    weights = SparseParameterVector()
    weights.add(1, 2.)
    weights.add(2, -4.)
    weights.scale(0.5)
    assert weights.get(1) == pytest.approx(1.)
    assert weights.get(2) == pytest.approx(-2.)
    assert weights.get_squared_norm() == pytest.approx(5.)
    assert weights.scale_factor == pytest.approx(0.5)

    weights.scale(1e-10)
    assert weights.scale_factor == 1.
    assert weights.get(1) == pytest.approx(1e-10)

    weights.add(1, 1.)
    assert weights.get(1) == pytest.approx(1. + 1e-10)


def test_add_vector():
    weights = SparseParameterVector()
    other = SparseParameterVector()
    weights.add(1, 1.)
    other.add(1, 2.)
    other.add(5, 3.)
    other.scale(2.)
    weights.add_vector(other)
    assert weights.get(1) == pytest.approx(5.)
    assert weights.get(5) == pytest.approx(6.)
    assert weights.get_squared_norm() == pytest.approx(61.)


def test_save_load_round_trip():
    weights = SparseParameterVector()
    weights.add(10, 1.5)
    weights.add(2 ** 63 + 5, -2.)
    weights.scale(0.25)

    buffer = io.BytesIO()
    weights.save(buffer)
    buffer.seek(0)

    loaded = SparseParameterVector()
    loaded.load(buffer)
    assert loaded.get(10) == weights.get(10)
    assert loaded.get(2 ** 63 + 5) == weights.get(2 ** 63 + 5)
    assert loaded.get_squared_norm() == pytest.approx(
        weights.get_squared_norm())


def test_labeled_get_absent_feature():
    weights = SparseLabeledParameterVector()
    found, scores = weights.get(42, [0, 1, 2])
    assert not found
    assert scores == [0., 0., 0.]


def test_labeled_get_subset_of_labels():
    weights = SparseLabeledParameterVector()
    weights.add(5, 2, 1.5)
    weights.add(5, 0, -1.)
    weights.add(5, 2, 0.5)

    found, scores = weights.get(5, [2, 1])
    assert found
    assert scores == [pytest.approx(2.), 0.]
    assert weights.get_squared_norm() == pytest.approx(5.)
    assert len(weights) == 1


def test_labeled_becomes_dense_with_many_labels():
    weights = SparseLabeledParameterVector()
    for label in range(8):
        weights.add(1, label, float(label + 1))

    assert isinstance(weights.values[1], DenseLabelWeights)
    found, scores = weights.get(1, list(range(10)))
    assert found
    assert scores == [pytest.approx(float(label + 1)) for label in range(8)] \
        + [0., 0.]
    assert weights.get_squared_norm() == pytest.approx(
        sum((label + 1.) ** 2 for label in range(8)))


def test_labeled_stop_growth_locks_feature_keys():
    weights = SparseLabeledParameterVector()
    weights.add(1, 0, 1.)
    weights.stop_growth()
    assert not weights.add(2, 0, 1.)
    assert not weights.exists(2)

    # new labels of an existing feature are still accepted
    assert weights.add(1, 3, 2.)
    assert weights.get(1, [3])[1] == [pytest.approx(2.)]


def test_labeled_scale_and_round_trip():
    weights = SparseLabeledParameterVector()
    weights.add(1, 0, 2.)
    weights.add(1, 4, -1.)
    weights.add(9, 1, 3.)
    weights.scale(0.5)

    assert weights.get(1, [0, 4])[1] == [pytest.approx(1.),
                                         pytest.approx(-0.5)]

    buffer = io.BytesIO()
    weights.save(buffer)
    buffer.seek(0)
    loaded = SparseLabeledParameterVector()
    loaded.load(buffer)

    for key in [1, 9, 100]:
        assert loaded.get(key, [0, 1, 4]) == weights.get(key, [0, 1, 4])
    assert loaded.get_squared_norm() == pytest.approx(
        weights.get_squared_norm())


def test_set_overwrites_and_respects_growth_lock():
    weights = SparseParameterVector()
    weights.add(1, 5.)
    assert weights.set(1, -2.)
    assert weights.set(2, 1.)
    assert weights.get(1) == pytest.approx(-2.)
    assert weights.get_squared_norm() == pytest.approx(5.)

    weights.stop_growth()
    assert not weights.set(3, 4.)
    assert not weights.exists(3)
    assert weights.set(2, 3.)
    assert weights.get(2) == pytest.approx(3.)


def test_labeled_set_overwrites_and_respects_growth_lock():
    weights = SparseLabeledParameterVector()
    weights.add(1, 0, 5.)
    weights.scale(0.5)
    assert weights.set(1, 0, 1.)
    assert weights.set(1, 2, -1.)
    assert weights.get(1, [0, 2])[1] == [pytest.approx(1.),
                                         pytest.approx(-1.)]
    assert weights.get_squared_norm() == pytest.approx(2.)

    weights.stop_growth()
    assert not weights.set(7, 0, 1.)
    assert not weights.exists(7)
    assert weights.set(1, 3, 2.)
    assert weights.get(1, [3])[1] == [pytest.approx(2.)]
