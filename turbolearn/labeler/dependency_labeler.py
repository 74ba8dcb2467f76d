import numpy as np

from ..classifier.structured_classifier import StructuredClassifier
from ..classifier.parameters import FeatureVector
from ..classifier.utils import get_logger
from .dependency_labeler_decoder import DependencyLabelerDecoder
from .dependency_labeler_features import DependencyLabelerFeatures
from .dependency_labeler_parts import DependencyLabelerParts, LabeledArc


logger = get_logger()


class DependencyLabeler(StructuredClassifier):
    '''Labels the arcs of fixed dependency trees with a linear model over
    features conjoined with labels.'''
    def __init__(self, options, constraints):
        decoder = DependencyLabelerDecoder(constraints)
        StructuredClassifier.__init__(self, options, decoder)
        self.constraints = constraints
        self.feature_extractor = DependencyLabelerFeatures()

        if options.verbose:
            logger.debug('Labels: %d, unique labels: %d, forbidden '
                         'transitions: %d' %
                         (constraints.num_labels,
                          len(constraints.unique_labels),
                          len(constraints.forbidden_transitions)))

    def _get_metadata(self):
        return {'options': self.options, 'constraints': self.constraints}

    @classmethod
    def _from_metadata(cls, metadata):
        return cls(metadata['options'], metadata['constraints'])

    def _get_part_label(self, part):
        '''Return the label a part's features are conjoined with. Pairs of
        sibling labels are mapped to a single label id.'''
        if isinstance(part, LabeledArc):
            return part.label
        return part.modifier_label * self.constraints.num_labels + \
            part.sibling_label

    def make_parts(self, instance):
        return DependencyLabelerParts(instance, self.constraints,
                                      use_siblings=self.options.use_siblings)

    def make_selected_features(self, instance, parts, selected_parts):
        '''All the parts of the same arc (or the same pair of siblings) share
        one list of features.'''
        features = [None] * len(parts)
        for m in range(1, len(instance)):
            indices = parts.get_arc_indices(m)
            if not any(selected_parts[r] for r in indices):
                continue
            arc_features = self.feature_extractor.compute_arc_features(
                instance, instance.get_head(m), m)
            for r in indices:
                features[r] = arc_features

        for (m, s), index in parts.sibling_indices.items():
            if not any(selected_parts[r] for r in index.values()):
                continue
            sibling_features = \
                self.feature_extractor.compute_sibling_features(
                    instance, instance.get_head(m), m, s)
            for r in index.values():
                features[r] = sibling_features

        return features

    def compute_scores(self, instance, parts, features):
        '''Score each group of parts sharing features with a single call to
        the labeled parameters.'''
        if self.scoring_with_cache:
            compute_label_scores = \
                self.parameters.compute_label_scores_with_cache
        else:
            compute_label_scores = self.parameters.compute_label_scores

        scores = np.zeros(len(parts))
        groups = [parts.get_arc_indices(m) for m in parts.arc_indices]
        groups.extend(list(index.values())
                      for index in parts.sibling_indices.values())
        for indices in groups:
            if not indices:
                continue
            labels = [self._get_part_label(parts[r]) for r in indices]
            label_scores = compute_label_scores(features[indices[0]], labels)
            scores[indices] = label_scores

        return scores

    def make_gradient_step(self, parts, features, eta, t, gold_output,
                           predicted_output):
        for r in range(len(parts)):
            if predicted_output[r] == gold_output[r]:
                continue
            label = self._get_part_label(parts[r])
            self.parameters.make_label_gradient_step(
                features[r], eta, t, label,
                predicted_output[r] - gold_output[r])

    def make_feature_difference(self, parts, features, gold_output,
                                predicted_output):
        difference = FeatureVector()
        for r in range(len(parts)):
            if predicted_output[r] == gold_output[r]:
                continue
            label = self._get_part_label(parts[r])
            for key in features[r]:
                difference.labeled_weights.add(
                    key, label, predicted_output[r] - gold_output[r])
        return difference

    def remove_unsupported_features(self, instance, parts, features):
        # parts of the same arc share a list, so filter each list once
        filtered = {}
        for r in range(len(parts)):
            key = id(features[r])
            if key not in filtered:
                filtered[key] = [f for f in features[r]
                                 if self.parameters.exists_labeled(f)]
            features[r] = filtered[key]

    def touch_parameters(self, parts, features, gold_output):
        for r in range(len(parts)):
            if gold_output[r] == 0:
                continue
            label = self._get_part_label(parts[r])
            self.parameters.make_label_gradient_step(features[r], 0., 0,
                                                     label, 0.)

    def label_instance(self, instance, parts, output):
        '''Write the predicted label of each arc to instance.relations.'''
        instance.relations = parts.get_labels(output)

    def evaluate(self, instance_data, predictions):
        '''Compute the accuracy of the predicted arc labels, if gold outputs
        are available.

        :return: the accuracy, or None if there is no gold output
        '''
        num_correct = 0
        num_total = 0
        for parts, gold_output, predicted_output in zip(
                instance_data.parts, instance_data.gold_parts, predictions):
            if gold_output is None:
                return None
            gold_labels = parts.get_labels(gold_output)
            predicted_labels = parts.get_labels(predicted_output)
            for gold, predicted in zip(gold_labels[1:], predicted_labels[1:]):
                num_total += 1
                if gold == predicted:
                    num_correct += 1

        if num_total == 0:
            return None
        accuracy = float(num_correct) / num_total
        logger.info('Label accuracy: %f' % accuracy)
        return accuracy
