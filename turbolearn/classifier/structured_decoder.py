import numpy as np

from .utils import get_logger


logger = get_logger()


class DecodingError(Exception):
    '''Raised when decoding cannot produce a valid structure, or when a
    decoded output violates the optimality of the decoder.'''


class StructuredDecoder(object):
    '''An abstract decoder for structured prediction.

    Decoders hold no state across calls besides the task configuration given
    at construction time.'''
    # realized losses and entropies below this are decoding bugs
    negative_tolerance = 1e-6

    def __init__(self):
        pass

    def decode(self, instance, parts, scores):
        '''Decode, computing the highest-scores output.
        Must return a vector of 0/1 predicted_outputs of the same size
        as parts.'''
        raise NotImplementedError

    def decode_marginals(self, instance, parts, scores, gold_outputs):
        '''Compute the posterior marginal of each part under the distribution
        induced by the scores.
        Must return a tuple (predicted_outputs, entropy, loss), where
        predicted_outputs has the marginals and loss is the negative
        log-likelihood of the gold output.'''
        raise NotImplementedError

    def decode_mira(self, instance, parts, scores, gold_outputs,
                    old_mira=False):
        '''Perform cost-augmented decoding or classical MIRA.
        The cost is the Hamming distance to the gold output, written as
        p.dot(predicted) + q.'''
        p = 0.5 - gold_outputs
        q = 0.5 * np.sum(gold_outputs)
        if old_mira:
            predicted_outputs = self.decode(instance, parts, scores)
        else:
            scores_cost = scores + p
            predicted_outputs = self.decode(instance, parts, scores_cost)
        cost = p.dot(predicted_outputs) + q
        loss = cost + scores.dot(predicted_outputs - gold_outputs)
        loss = self._check_non_negative(loss, 'margin loss')

        return predicted_outputs, cost, loss

    def decode_cost_augmented(self, instance, parts, scores, gold_outputs):
        '''Perform cost-augmented decoding.'''
        return self.decode_mira(instance, parts, scores, gold_outputs,
                                old_mira=False)

    def compute_loss(self, gold_output, predicted_output, scores):
        '''Compute the cost-augmented loss for the given prediction'''
        p = 0.5 - gold_output
        q = 0.5 * np.sum(gold_output)
        cost = p.dot(predicted_output) + q
        loss = cost + scores.dot(predicted_output - gold_output)

        return loss

    def _check_non_negative(self, value, name):
        '''Clip tiny negative values caused by rounding; larger ones mean the
        decoder is not returning an optimal output.'''
        if value >= 0.:
            return value
        if value < -self.negative_tolerance:
            raise DecodingError('Negative %s: %f' % (name, value))
        logger.warning('Negative %s set to zero: %g' % (name, value))
        return 0.
