import itertools
import logging

import numpy as np
import pytest

from turbolearn.classifier.structured_decoder import DecodingError, \
    StructuredDecoder
from turbolearn.labeler.dependency_labeler_decoder import \
    DependencyLabelerDecoder
from turbolearn.labeler.dependency_labeler_instance import \
    DependencyLabelerInstance
from turbolearn.labeler.dependency_labeler_parts import \
    DependencyLabelerParts, LabeledArc
from turbolearn.labeler.label_constraints import LabelConstraints


def _make_instance(relations=None):
    # token 2 heads tokens 1, 3 and 4; the root heads token 2
    return DependencyLabelerInstance(words=[0, 11, 12, 13, 14],
                                     tags=[9, 0, 1, 2, 0],
                                     heads=[-1, 2, 0, 2, 2],
                                     relations=relations)


def _output_for(parts, labels):
    output = np.zeros(len(parts))
    for r, part in enumerate(parts):
        if isinstance(part, LabeledArc):
            if labels[part.modifier] == part.label:
                output[r] = 1.
        elif labels[part.modifier] == part.modifier_label and \
                labels[part.sibling] == part.sibling_label:
            output[r] = 1.
    return output


def _legal_outputs(instance, parts, constraints):
    '''Enumerate the outputs of all legal labelings by brute force.'''
    modifiers = list(range(1, len(instance)))
    candidates = [parts.get_arc_labels(m) for m in modifiers]
    outputs = []
    for assignment in itertools.product(*candidates):
        labels = [-1] + list(assignment)
        legal = True
        for head in parts.heads():
            siblings = parts.get_modifiers(head)
            head_labels = [labels[m] for m in siblings]
            for label in constraints.unique_labels:
                if head_labels.count(label) > 1:
                    legal = False
            for previous, label in zip(head_labels[:-1], head_labels[1:]):
                if not constraints.transition_allowed(previous, label):
                    legal = False
        if legal:
            outputs.append(_output_for(parts, labels))
    return outputs


CONSTRAINTS = [
    LabelConstraints(3),
    LabelConstraints(3, unique_labels=[0]),
    LabelConstraints(3, unique_labels=[0, 2], forbidden_transitions=[(1, 1)]),
    LabelConstraints(3, forbidden_transitions=[(0, 1), (2, 2)],
                     allowed_labels_by_tag={2: [1, 2]}),
]


@pytest.mark.parametrize('use_siblings', [False, True])
@pytest.mark.parametrize('constraints', CONSTRAINTS)
@pytest.mark.parametrize('seed', [0, 1, 2])
def test_decode_is_optimal(constraints, use_siblings, seed):
    instance = _make_instance()
    parts = DependencyLabelerParts(instance, constraints, use_siblings)
    scores = np.random.RandomState(seed).randn(len(parts))
    decoder = DependencyLabelerDecoder(constraints)

    predicted = decoder.decode(instance, parts, scores)
    outputs = _legal_outputs(instance, parts, constraints)
    best = max(scores.dot(output) for output in outputs)

    assert any(np.array_equal(predicted, output) for output in outputs)
    assert scores.dot(predicted) == pytest.approx(best)


@pytest.mark.parametrize('use_siblings', [False, True])
@pytest.mark.parametrize('constraints', CONSTRAINTS)
def test_marginals_match_brute_force(constraints, use_siblings):
    instance = _make_instance()
    parts = DependencyLabelerParts(instance, constraints, use_siblings)
    scores = np.random.RandomState(3).randn(len(parts))
    decoder = DependencyLabelerDecoder(constraints)

    outputs = _legal_outputs(instance, parts, constraints)
    gold = outputs[0]
    log_potentials = np.array([scores.dot(output) for output in outputs])
    log_z = np.log(np.exp(log_potentials).sum())
    probabilities = np.exp(log_potentials - log_z)
    expected_marginals = sum(p * output
                             for p, output in zip(probabilities, outputs))
    expected_entropy = -(probabilities * np.log(probabilities)).sum()

    marginals, entropy, loss = decoder.decode_marginals(instance, parts,
                                                        scores, gold)

    np.testing.assert_allclose(marginals, expected_marginals, atol=1e-9)
    assert entropy == pytest.approx(expected_entropy)
    assert entropy >= 0
    assert loss == pytest.approx(log_z - scores.dot(gold))

    # the label marginals of each arc sum to one
    for m in range(1, len(instance)):
        total = marginals[parts.get_arc_indices(m)].sum()
        assert total == pytest.approx(1., abs=1e-9)


@pytest.mark.parametrize('use_siblings', [False, True])
@pytest.mark.parametrize('seed', [0, 1, 2, 3])
def test_cost_augmented_decoding(use_siblings, seed):
    constraints = LabelConstraints(3, unique_labels=[0])
    instance = _make_instance(relations=[-1, 0, 2, 1, 2])
    parts = DependencyLabelerParts(instance, constraints, use_siblings)
    gold = np.array(parts.get_gold_output())
    scores = np.random.RandomState(seed).randn(len(parts))
    decoder = DependencyLabelerDecoder(constraints)

    predicted, cost, loss = decoder.decode_cost_augmented(instance, parts,
                                                          scores, gold)

    p = 0.5 - gold
    q = 0.5 * gold.sum()
    outputs = _legal_outputs(instance, parts, constraints)
    best = max(scores.dot(output) + p.dot(output) + q for output in outputs)

    assert cost == pytest.approx(np.abs(predicted - gold).sum() / 2.)
    assert loss >= 0
    assert loss == pytest.approx(best - scores.dot(gold))
    assert loss == pytest.approx(
        decoder.compute_loss(gold, predicted, scores))


def test_decode_labels_returns_label_per_token():
    constraints = LabelConstraints(2)
    instance = _make_instance()
    parts = DependencyLabelerParts(instance, constraints)
    scores = np.zeros(len(parts))
    for r, part in enumerate(parts):
        if part.label == part.modifier % 2:
            scores[r] = 1.
    decoder = DependencyLabelerDecoder(constraints)

    labels = decoder.decode_labels(instance, parts, scores)
    assert labels == [-1, 1, 0, 1, 0]
    assert parts.get_labels(decoder.decode(instance, parts, scores)) == labels


def test_no_legal_labeling_is_an_error():
    # both modifiers of token 2 with tag 0 can only take the unique label 0
    constraints = LabelConstraints(2, unique_labels=[0],
                                   allowed_labels_by_tag={0: [0]})
    instance = _make_instance()
    parts = DependencyLabelerParts(instance, constraints)
    scores = np.zeros(len(parts))
    gold = np.zeros(len(parts))
    decoder = DependencyLabelerDecoder(constraints)

    with pytest.raises(DecodingError):
        decoder.decode(instance, parts, scores)
    with pytest.raises(DecodingError):
        decoder.decode_marginals(instance, parts, scores, gold)


def test_labels_out_of_range_are_rejected():
    with pytest.raises(ValueError):
        LabelConstraints(2, unique_labels=[2])
    with pytest.raises(ValueError):
        LabelConstraints(2, forbidden_transitions=[(0, -1)])


def test_illegal_gold_output_is_an_error():
    # token 2 has three modifiers, all labeled with the unique label 0
    constraints = LabelConstraints(2, unique_labels=[0])
    instance = _make_instance(relations=[-1, 0, 0, 0, 0])
    parts = DependencyLabelerParts(instance, constraints)
    gold = np.array(parts.get_gold_output())
    scores = np.array([5. if part.label == 0 else 0. for part in parts])
    decoder = DependencyLabelerDecoder(constraints)

    with pytest.raises(DecodingError):
        decoder.decode_cost_augmented(instance, parts, scores, gold)
    with pytest.raises(DecodingError):
        decoder.decode_marginals(instance, parts, scores, gold)


def test_small_negative_values_are_clipped(caplog):
    decoder = StructuredDecoder()
    assert decoder._check_non_negative(0.25, 'loss') == 0.25
    with caplog.at_level(logging.WARNING, logger='turbolearn'):
        assert decoder._check_non_negative(-1e-8, 'loss') == 0.
    assert 'Negative loss' in caplog.text

    with pytest.raises(DecodingError):
        decoder._check_non_negative(-1e-3, 'loss')
