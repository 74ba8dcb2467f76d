'''A generic implementation of a parameter vector.'''

import pickle

from .sparse_parameter_vectors import SparseParameterVector, \
    SparseLabeledParameterVector
from .weight_cache import FeatureLabelCache
from .utils import get_logger


logger = get_logger()


class FeatureVector(object):
    '''This class implements a feature vector, which is convenient to sum over
    binary features, weight them, etc. It just uses the classes
    SparseParameterVector and SparseLabeledParameterVector, which allow fast
    insertions and lookups.'''
    def __init__(self):
        self.weights = SparseParameterVector()
        self.labeled_weights = SparseLabeledParameterVector()

    def get_squared_norm(self):
        '''Get the squared norm of the parameter vector.'''
        return self.weights.get_squared_norm() + \
            self.labeled_weights.get_squared_norm()


class Parameters(object):
    '''A class for holding and updating parameters in a linear model.

    It contains both "labeled" weights (for features that are conjoined with
    output labels) and regular weights. It allows averaging the parameters (as
    in averaged perceptron), which requires keeping around another weight
    vector of the same size.'''
    def __init__(self, use_average=True):
        self.caching_weights = FeatureLabelCache()
        self.initialize(use_average)

    def initialize(self, use_average):
        '''Allocate empty weight vectors. The averaged vectors are only
        allocated if use_average is True.'''
        self.use_average = use_average
        self.weights = SparseParameterVector()
        self.labeled_weights = SparseLabeledParameterVector()
        if self.use_average:
            self.averaged_weights = SparseParameterVector()
            self.averaged_labeled_weights = SparseLabeledParameterVector()
        else:
            self.averaged_weights = None
            self.averaged_labeled_weights = None
        self.caching_weights.clear()

    def _all_vectors(self):
        vectors = [self.weights, self.labeled_weights]
        if self.use_average:
            vectors += [self.averaged_weights, self.averaged_labeled_weights]
        return vectors

    def save(self, file):
        '''Save the parameters to an open binary file.'''
        pickle.dump(self.use_average, file)
        for vector in self._all_vectors():
            vector.save(file)

    def load(self, file):
        '''Load the parameters from an open binary file. The loaded parameters
        are locked; call allow_growth() to keep training them.'''
        use_average = pickle.load(file)
        self.initialize(use_average)
        for vector in self._all_vectors():
            vector.load(file)
        self.stop_growth()

    def stop_growth(self):
        '''Lock the parameter vector. A locked vector means that no
        features can be added.'''
        for vector in self._all_vectors():
            vector.stop_growth()

    def allow_growth(self):
        '''Unlock the parameter vector. A locked vector means that no
        features can be added.'''
        for vector in self._all_vectors():
            vector.allow_growth()

    def __len__(self):
        '''Get the number of parameters.
        NOTE: this counts the parameters of the features that are conjoined with
        output labels as a single parameter.'''
        return len(self.weights) + len(self.labeled_weights)

    def size(self):
        return len(self)

    def exists(self, key):
        '''Checks if a feature exists.'''
        return self.weights.exists(key)

    def exists_labeled(self, key):
        '''Checks if a labeled feature exists.'''
        return self.labeled_weights.exists(key)

    def get(self, key):
        '''Get the weight of a "simple" feature.'''
        return self.weights.get(key)

    def get_labeled(self, key, labels):
        '''Get the weights of features conjoined with output labels.
        The vector "labels" contains the labels that we want to conjoin with.
        Return a tuple (found, label_scores), with found False if the feature
        does not exist.'''
        return self.labeled_weights.get(key, labels)

    def get_squared_norm(self):
        '''Get the squared norm of the parameter vector.'''
        return self.weights.get_squared_norm() + \
            self.labeled_weights.get_squared_norm()

    def compute_score(self, features):
        '''Compute the score corresponding to a set of "simple" features.
        "features" is a list of keys (e.g. 64-bit integers).'''
        score = 0.
        for key in features:
            score += self.get(key)
        return score

    def compute_label_scores(self, features, labels):
        '''Compute the scores corresponding to a set of features, conjoined with
        output labels. The returned list contains the score for each label.'''
        scores = [0.] * len(labels)
        for key in features:
            found, label_scores = self.get_labeled(key, labels)
            if not found:
                continue
            for k in range(len(labels)):
                scores[k] += label_scores[k]
        return scores

    def compute_label_scores_with_cache(self, features, labels):
        '''Same as compute_label_scores, but using a cache for feature-label
        weights already looked up. Only labels missing from the cache are
        queried in the labeled weights.'''
        cache = self.caching_weights
        scores = [0.] * len(labels)
        for key in features:
            if not self.exists_labeled(key):
                continue

            reduced_labels = []
            reduced_indices = []
            for k, label in enumerate(labels):
                value = cache.find(key, label)
                if value is None:
                    reduced_labels.append(label)
                    reduced_indices.append(k)
                    cache.increment_misses()
                else:
                    scores[k] += value
                    cache.increment_hits()

            if not reduced_labels:
                continue
            found, label_scores = self.get_labeled(key, reduced_labels)
            if not found:
                continue
            for k, label, value in zip(reduced_indices, reduced_labels,
                                       label_scores):
                scores[k] += value
                cache.insert(key, label, value)
        return scores

    def scale(self, scale_factor):
        '''Scale the parameter vector by a scale factor.'''
        self.weights.scale(scale_factor)
        self.labeled_weights.scale(scale_factor)
        self.caching_weights.clear()

    def make_gradient_step(self, features, eta, iteration, gradient_value):
        '''Make a gradient step with a stepsize of eta, with respect to a vector
        of "simple" features.
        The iteration number is provided as input since it is necessary to
        update the wanna-be "averaged parameters" in an efficient manner.'''
        for key in features:
            if not self.weights.add(key, -eta*gradient_value):
                continue
            if self.use_average:
                # perceptron/mira:
                # T*u1 + (T-1)*u2 + ... u_T
                # = T*(u1 + u2 + ...) - u2 - 2*u3 - (T-1)*u_T
                # = T*w_T - u2 - 2*u3 - (T-1)*u_T.
                self.averaged_weights.add(
                    key, float(iteration) * eta * gradient_value)

    def make_label_gradient_step(self, features, eta, iteration, label,
                                 gradient_value):
        '''Make a gradient step with a stepsize of eta, with respect to a vector
        of features conjoined with a label.
        The iteration number is provided as input since it is necessary to
        update the wanna-be "averaged parameters" in an efficient manner.'''
        for key in features:
            if not self.labeled_weights.add(key, label, -eta*gradient_value):
                continue
            if self.use_average:
                self.averaged_labeled_weights.add(
                    key, label, float(iteration) * eta * gradient_value)
        self.caching_weights.clear()

    def finalize(self, num_iterations):
        '''Finalize training, after a total of num_iterations. This is a no-op
        unless we are averaging the parameter vector, in which case the averaged
        parameters are finally computed and replace the original parameters.
        It must be called only once.'''
        if not self.use_average:
            return
        if num_iterations <= 0:
            raise ValueError('Cannot average over %d iterations' %
                             num_iterations)

        logger.info('Averaging the weights...')
        self.averaged_weights.scale(1./float(num_iterations))
        self.weights.add_vector(self.averaged_weights)
        self.averaged_labeled_weights.scale(1./float(num_iterations))
        self.labeled_weights.add_vector(self.averaged_labeled_weights)
        self.caching_weights.clear()

    def get_caching_weights_hits(self):
        return self.caching_weights.hits

    def get_caching_weights_misses(self):
        return self.caching_weights.misses

    def get_caching_weights_size(self):
        return self.caching_weights.get_size()
