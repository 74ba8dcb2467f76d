import numpy as np
from scipy.special import logsumexp

from ..classifier.structured_decoder import StructuredDecoder, DecodingError
from ..classifier.utils import get_logger


logger = get_logger()


class LabelSequence(object):
    """
    The modifiers of one head seen as a sequence to be labeled, together with
    their scores.

    A state at position i is a pair (label, used), where used is the frozenset
    of unique labels assigned to modifiers up to i. Heads do not interact, so
    each LabelSequence is decoded independently.
    """
    def __init__(self, head, parts, scores, constraints):
        self.head = head
        self.parts = parts
        self.scores = scores
        self.constraints = constraints
        self.modifiers = parts.get_modifiers(head)
        self.labels = [parts.get_arc_labels(m) for m in self.modifiers]
        self.indices = [parts.get_arc_indices(m) for m in self.modifiers]
        self.siblings = [None] + [
            parts.get_sibling_indices(m, s)
            for m, s in zip(self.modifiers[:-1], self.modifiers[1:])]

    def __len__(self):
        return len(self.modifiers)

    def _next_used(self, used, label):
        if not self.constraints.is_unique(label):
            return used
        if label in used:
            return None
        return used | {label}

    def initial_states(self):
        """
        Yield tuples (k, state, score) for the first modifier, where k is the
        position of the label among its candidates.
        """
        for k, label in enumerate(self.labels[0]):
            used = self._next_used(frozenset(), label)
            yield k, (label, used), self.scores[self.indices[0][k]]

    def transitions(self, i, state):
        """
        Yield tuples (k, next_state, score, sibling_index) for the legal
        labels of the i-th modifier (i >= 1) following the given state of the
        (i-1)-th. score includes the label score and the score of the sibling
        part, whose index is -1 if there is none.
        """
        previous_label, used = state
        siblings = self.siblings[i]
        for k, label in enumerate(self.labels[i]):
            if not self.constraints.transition_allowed(previous_label, label):
                continue
            next_used = self._next_used(used, label)
            if next_used is None:
                continue

            score = self.scores[self.indices[i][k]]
            sibling_index = siblings.get((previous_label, label), -1)
            if sibling_index >= 0:
                score += self.scores[sibling_index]
            yield k, (label, next_used), score, sibling_index

    def _no_labeling_error(self):
        return DecodingError('No legal labeling for the modifiers %s of head '
                             '%d' % (self.modifiers, self.head))

    def viterbi(self):
        """
        Return the highest scoring sequence of label positions and its score.
        """
        delta = [{} for _ in self.modifiers]
        backtrack = [{} for _ in self.modifiers]
        for k, state, score in self.initial_states():
            delta[0][state] = score
            backtrack[0][state] = (k, None)

        for i in range(1, len(self)):
            for state, value in delta[i - 1].items():
                for k, next_state, score, _ in self.transitions(i, state):
                    new_value = value + score
                    if next_state not in delta[i] or \
                            new_value > delta[i][next_state]:
                        delta[i][next_state] = new_value
                        backtrack[i][next_state] = (k, state)

        if not delta[-1]:
            raise self._no_labeling_error()

        state = max(delta[-1], key=delta[-1].get)
        best_score = delta[-1][state]
        best_positions = [0] * len(self)
        for i in range(len(self) - 1, -1, -1):
            k, previous_state = backtrack[i][state]
            best_positions[i] = k
            state = previous_state

        return best_positions, best_score

    def forward_backward(self, marginals):
        """
        Add the marginals of the arc and sibling parts of this sequence to
        the marginals array, and return the log-partition function.
        """
        n = len(self)
        alpha = [{} for _ in self.modifiers]
        for k, state, score in self.initial_states():
            alpha[0][state] = score

        for i in range(1, n):
            terms = {}
            for state, value in alpha[i - 1].items():
                for k, next_state, score, _ in self.transitions(i, state):
                    terms.setdefault(next_state, []).append(value + score)
            alpha[i] = {state: logsumexp(values)
                        for state, values in terms.items()}

        if not alpha[-1]:
            raise self._no_labeling_error()
        log_partition = logsumexp(list(alpha[-1].values()))

        beta = [{} for _ in self.modifiers]
        beta[-1] = {state: 0. for state in alpha[-1]}
        for i in range(n - 2, -1, -1):
            for state in alpha[i]:
                values = [score + beta[i + 1][next_state]
                          for _, next_state, score, _ in
                          self.transitions(i + 1, state)
                          if next_state in beta[i + 1]]
                beta[i][state] = logsumexp(values) if values else -np.inf

        for i in range(n):
            # a state's label is always among the candidates of position i
            positions = {label: k for k, label in enumerate(self.labels[i])}
            for state, value in alpha[i].items():
                posterior = np.exp(value + beta[i][state] - log_partition)
                index = self.indices[i][positions[state[0]]]
                marginals[index] += posterior

            if i == 0 or not self.siblings[i]:
                continue
            for state, value in alpha[i - 1].items():
                for _, next_state, score, sibling_index in \
                        self.transitions(i, state):
                    if sibling_index < 0 or next_state not in beta[i]:
                        continue
                    marginals[sibling_index] += np.exp(
                        value + score + beta[i][next_state] - log_partition)

        return log_partition


class DependencyLabelerDecoder(StructuredDecoder):
    """
    Decoder for labeling the arcs of a fixed dependency tree.

    The modifiers of each head form a sequence, optionally with scores for
    the labels of consecutive siblings, subject to the hard constraints in a
    LabelConstraints object. Each sequence is decoded exactly with dynamic
    programming.
    """
    def __init__(self, constraints):
        StructuredDecoder.__init__(self)
        self.constraints = constraints

    def _sequences(self, parts, scores):
        for head in parts.heads():
            sequence = LabelSequence(head, parts, scores, self.constraints)
            if len(sequence):
                yield sequence

    def decode_labels(self, instance, parts, scores):
        """
        Find the best label for each modifier.

        :return: a list with the best label of each token, and -1 for the
            root
        """
        best_labels = [-1] * len(instance)
        for sequence in self._sequences(parts, scores):
            best_positions, _ = sequence.viterbi()
            for m, labels, k in zip(sequence.modifiers, sequence.labels,
                                    best_positions):
                best_labels[m] = labels[k]
        return best_labels

    def decode(self, instance, parts, scores):
        """
        Decode the scores to the highest scoring legal labeling.

        :param instance: DependencyLabelerInstance
        :param parts: DependencyLabelerParts
        :param scores: 1d array with one score per part
        :return: a 0/1 array with the same size as parts
        """
        best_labels = self.decode_labels(instance, parts, scores)
        predicted_output = np.zeros(len(parts))
        for m, indices in parts.arc_indices.items():
            for label, r in zip(parts.get_arc_labels(m), indices):
                if label == best_labels[m]:
                    predicted_output[r] = 1.

        for (m, s), index in parts.sibling_indices.items():
            r = index.get((best_labels[m], best_labels[s]))
            if r is not None:
                predicted_output[r] = 1.

        return predicted_output

    def decode_label_marginals(self, instance, parts, scores):
        """
        Compute the marginal probability of each part with the
        forward-backward algorithm.

        :return: a tuple (marginals, log_partition)
        """
        marginals = np.zeros(len(parts))
        log_partition = 0.
        for sequence in self._sequences(parts, scores):
            log_partition += sequence.forward_backward(marginals)
        return marginals, log_partition

    def decode_marginals(self, instance, parts, scores, gold_outputs):
        """
        Compute the marginals, the entropy of the distribution over labelings
        and the negative log-likelihood of the gold output.
        """
        predicted_outputs, log_partition = self.decode_label_marginals(
            instance, parts, scores)

        entropy = log_partition - scores.dot(predicted_outputs)
        loss = log_partition - scores.dot(gold_outputs)
        entropy = self._check_non_negative(entropy, 'entropy')
        loss = self._check_non_negative(loss, 'log loss')

        return predicted_outputs, entropy, loss
