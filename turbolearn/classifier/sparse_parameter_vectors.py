'''Implementations of sparse parameter vectors to use in linear models.'''

import pickle

from .utils import get_logger


logger = get_logger()


class ScaledParameterMap(object):
    '''A hash table of entries kept up to a common scale factor.

    The true weights are scale_factor times the stored values, so scaling the
    whole vector takes constant time; this is what SGD needs at every step.
    The squared norm of the true weights is cached and updated on every
    write. Subclasses define what an entry is (a float, or the weights of
    several labels).'''
    # Renormalize the map when |scale_factor| falls below this.
    scale_factor_threshold = 1e-9

    def __init__(self):
        self.values = {}
        self.scale_factor = 1.
        self.squared_norm = 0.
        # No new keys are accepted while locked.
        self.locked = False

    def stop_growth(self):
        self.locked = True

    def allow_growth(self):
        self.locked = False

    def __len__(self):
        '''Number of instantiated feature keys.'''
        return len(self.values)

    def exists(self, key):
        return key in self.values

    def get_squared_norm(self):
        return self.squared_norm

    def scale(self, scale_factor):
        '''Multiply every weight by scale_factor.'''
        self.scale_factor *= scale_factor
        self.squared_norm *= scale_factor * scale_factor
        if abs(self.scale_factor) < self.scale_factor_threshold:
            self._renormalize()

    def _renormalize(self):
        '''Fold the scale factor into every stored value. This touches the
        whole map.'''
        if self.scale_factor == 1.:
            return
        logger.info('Renormalizing the parameter map...')
        for key in self.values:
            self._rescale_entry(key, self.scale_factor)
        self.scale_factor = 1.

    def _find_or_insert(self, key):
        '''Return True if the key is (or has just been) instantiated; keys
        are only inserted while the map is not locked.'''
        if key in self.values:
            return True
        if self.locked:
            return False
        self.values[key] = self._new_entry()
        return True

    def _update_norm(self, old_value, new_value):
        self.squared_norm += new_value * new_value - old_value * old_value
        # rounding can push a vanishing norm below zero
        if self.squared_norm < 0.:
            self.squared_norm = 0.

    def _new_entry(self):
        raise NotImplementedError

    def _rescale_entry(self, key, factor):
        raise NotImplementedError


class SparseParameterVector(ScaledParameterMap):
    '''Maps 64-bit feature keys to real weights.'''
    def save(self, file):
        '''Pickle a dictionary from keys to weights to an open binary
        file.'''
        pickle.dump({key: self._get_value(key) for key in self.values}, file)

    def load(self, file):
        self.values = pickle.load(file)
        self.scale_factor = 1.
        self.squared_norm = sum(value * value
                                for value in self.values.values())

    def get(self, key):
        '''The weight of a key; absent keys weigh zero.'''
        if key not in self.values:
            return 0.
        return self._get_value(key)

    def set(self, key, value):
        '''Set a weight. Return False (changing nothing) if the key is absent
        and growth is stopped.'''
        if not self._find_or_insert(key):
            return False
        self._set_value(key, value)
        return True

    def add(self, key, value):
        '''Add value to a weight. Return False (changing nothing) if the key
        is absent and growth is stopped.'''
        if not self._find_or_insert(key):
            return False
        self._set_value(key, self._get_value(key) + value)
        return True

    def add_vector(self, other):
        '''Add another SparseParameterVector to this one. Keys that cannot be
        inserted are skipped.'''
        for key in other.values:
            self.add(key, other._get_value(key))

    def _get_value(self, key):
        return self.values[key] * self.scale_factor

    def _set_value(self, key, value):
        self._update_norm(self._get_value(key), value)
        self.values[key] = value / self.scale_factor

    def _new_entry(self):
        return 0.

    def _rescale_entry(self, key, factor):
        self.values[key] *= factor


class SparseLabelWeights(object):
    '''Weights of the few labels seen with a feature, as a list of
    [label, weight] pairs.'''
    def __init__(self):
        self.label_weights = []

    def __len__(self):
        return len(self.label_weights)

    def items(self):
        return [(label, weight) for label, weight in self.label_weights]

    def get_weight(self, label):
        for label_, weight in self.label_weights:
            if label_ == label:
                return weight
        return 0.

    def set_weight(self, label, weight):
        for pair in self.label_weights:
            if pair[0] == label:
                pair[1] = weight
                return
        self.label_weights.append([label, weight])

    def scale(self, factor):
        for pair in self.label_weights:
            pair[1] *= factor


class DenseLabelWeights(object):
    '''Weights of a feature for every label up to the largest one seen,
    indexed by label.'''
    def __init__(self, label_weights=None):
        self.weights = []
        if label_weights is not None:
            for label, weight in label_weights.items():
                self.set_weight(label, weight)

    def __len__(self):
        return len(self.weights)

    def items(self):
        return list(enumerate(self.weights))

    def get_weight(self, label):
        if label >= len(self.weights):
            return 0.
        return self.weights[label]

    def set_weight(self, label, weight):
        missing = label + 1 - len(self.weights)
        if missing > 0:
            self.weights.extend([0.] * missing)
        self.weights[label] = weight

    def scale(self, factor):
        self.weights = [weight * factor for weight in self.weights]


class SparseLabeledParameterVector(ScaledParameterMap):
    '''Maps 64-bit feature keys to the weights of that feature conjoined with
    each label.

    Growth locking applies to feature keys only: new labels of a feature
    that already exists are always accepted. Label weights start as a
    SparseLabelWeights and switch to DenseLabelWeights when more than
    max_sparse_labels labels are active.'''
    max_sparse_labels = 5

    def save(self, file):
        '''Pickle a dictionary from keys to lists of (label, weight) pairs to
        an open binary file.'''
        data = {key: self._get_label_weight_pairs(key) for key in self.values}
        pickle.dump(data, file)

    def load(self, file):
        data = pickle.load(file)
        self.values = {}
        self.scale_factor = 1.
        self.squared_norm = 0.
        for key, pairs in data.items():
            self.values[key] = self._new_entry()
            for label, value in pairs:
                self._set_value(key, label, value)

    def get(self, key, labels):
        '''Get the weights of a feature conjoined with each of the labels.

        :return: a tuple (found, scores). found is False if the key is not
            instantiated at all; scores has one weight per requested label
            (0 where the pair is absent).
        '''
        if key not in self.values:
            return False, [0.] * len(labels)
        label_weights = self.values[key]
        return True, [label_weights.get_weight(label) * self.scale_factor
                      for label in labels]

    def set(self, key, label, value):
        if not self._find_or_insert(key):
            return False
        self._set_value(key, label, value)
        return True

    def add(self, key, label, value):
        '''Add value to the weight of (key, label). Return False (changing
        nothing) if the key is absent and growth is stopped.'''
        if not self._find_or_insert(key):
            return False
        self._set_value(key, label, self._get_value(key, label) + value)
        return True

    def add_vector(self, other):
        for key in other.values:
            for label, value in other._get_label_weight_pairs(key):
                self.add(key, label, value)

    def _get_label_weight_pairs(self, key):
        return [(label, value * self.scale_factor)
                for label, value in self.values[key].items()]

    def _get_value(self, key, label):
        return self.values[key].get_weight(label) * self.scale_factor

    def _set_value(self, key, label, value):
        self._update_norm(self._get_value(key, label), value)
        label_weights = self.values[key]
        label_weights.set_weight(label, value / self.scale_factor)
        if isinstance(label_weights, SparseLabelWeights) and \
                len(label_weights) > self.max_sparse_labels:
            self.values[key] = DenseLabelWeights(label_weights)

    def _new_entry(self):
        return SparseLabelWeights()

    def _rescale_entry(self, key, factor):
        self.values[key].scale(factor)
