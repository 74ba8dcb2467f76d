'''A generic implementation of an abstract structured classifier, trained
with online algorithms over a sparse linear model.'''

import pickle
import random
import time

import numpy as np
from joblib import Parallel, delayed

from .parameters import Parameters, FeatureVector
from .utils import nearly_eq_tol, get_logger
from .instance import InstanceData


logger = get_logger()


class StructuredClassifier(object):
    '''An abstract structured classifier.'''
    def __init__(self, options, decoder=None):
        self.options = options
        self.decoder = decoder
        self.parameters = Parameters(use_average=options.use_averaging)
        self.rng = random.Random(options.seed)
        # only score with the weight cache while the weights are frozen
        self.scoring_with_cache = False

        self.num_mistakes = 0
        self.num_total = 0
        self.total_loss = 0.
        self.truncated = 0
        self.lambda_coeff = 0.

    def _get_metadata(self):
        '''Return the picklable configuration needed to rebuild this object.
        Override in task-specific classifiers with extra configuration.'''
        return {'options': self.options}

    @classmethod
    def _from_metadata(cls, metadata):
        return cls(metadata['options'])

    def save(self, model_path=None):
        '''Save the full configuration and model.'''
        if not model_path:
            model_path = self.options.model_path

        with open(model_path, 'wb') as f:
            pickle.dump(self._get_metadata(), f)
            self.parameters.save(f)

    @classmethod
    def load(cls, model_path):
        '''Load the full configuration and model. The parameters are locked
        after loading.'''
        with open(model_path, 'rb') as f:
            metadata = pickle.load(f)
            classifier = cls._from_metadata(metadata)
            classifier.parameters.load(f)

        return classifier

    def format_instance(self, instance):
        '''Obtain a "formatted" instance. Override this function for
        task-specific formatted instances, which may be different from instance
        since they may have extra information, data in numeric format for faster
        processing, etc.'''
        return instance

    def label_instance(self, instance, parts, output):
        '''Return a labeled instance by adding the output information.
        Given a vector of parts of a desired output, builds the output
        information in the instance that corresponds to that output.
        Note: this function is task-specific and needs to be implemented by the
        deriving class.'''
        raise NotImplementedError

    def make_parts(self, instance):
        '''Compute the task-specific parts for this instance.
        Construct the vector of parts for a particular instance.
        The parts object must implement get_gold_output(), returning None if
        the instance is not annotated.
        Note: this function is task-specific and needs to be implemented by the
        deriving class.'''
        raise NotImplementedError

    def make_features(self, instance, parts):
        '''Construct the vector of features for a particular instance and given
        the parts. The vector will be of the same size as the vector of parts.
        '''
        return self.make_selected_features(instance, parts,
                                           [True for _ in range(len(parts))])

    def make_selected_features(self, instance, parts, selected_parts):
        '''Construct the vector of features for a particular instance and given
        a selected set of parts (parts which are selected as marked as true).
        The vector will be of the same size as the vector of parts.
        Note: this function is task-specific and needs to be implemented by the
        deriving class.'''
        raise NotImplementedError

    def compute_scores(self, instance, parts, features):
        '''Compute a score for every part in the instance using the current
        model and the part-specific features.
        NOTE: Override this method for task-specific score computation (e.g.
        to handle labeled features, etc.).'''
        num_parts = len(parts)
        scores = np.zeros(num_parts)
        for r in range(num_parts):
            scores[r] = self.parameters.compute_score(features[r])
        return scores

    def make_gradient_step(self, parts, features, eta, t, gold_output,
                           predicted_output):
        '''Perform a gradient step updating the current model.
        Perform a gradient step with stepsize eta. The iteration number is
        provided as input since it may be necessary to keep track of the
        averaged weights. The meaning of "predicted_output" depends on the
        training algorithm. In perceptron, it is the most likely output
        predicted by the model. In cost-augmented MIRA and structured SVMs, it
        is the cost-augmented prediction. In CRFs, it is the vector of
        posterior marginals for the parts.'''
        for r in range(len(parts)):
            if predicted_output[r] == gold_output[r]:
                continue
            self.parameters.make_gradient_step(
                features[r], eta, t, predicted_output[r] - gold_output[r])

    def make_feature_difference(self, parts, features, gold_output,
                                predicted_output):
        '''Compute the difference between predicted and gold feature vector.'''
        difference = FeatureVector()
        for r in range(len(parts)):
            if predicted_output[r] == gold_output[r]:
                continue
            for key in features[r]:
                difference.weights.add(key,
                                       predicted_output[r] - gold_output[r])
        return difference

    def remove_unsupported_features(self, instance, parts, features):
        '''Given an instance, a vector of parts, and features for those parts,
        remove all the features which are not supported, i.e., that were not
        previously created in the parameter vector. This is used for training
        with supported features (flag --only_supported_features).'''
        for r in range(len(parts)):
            features[r] = [key for key in features[r]
                           if self.parameters.exists(key)]

    def touch_parameters(self, parts, features, gold_output):
        '''Perform an empty gradient step on the features of the gold parts.
        This will be a no-op for the parameters that exist already, and will
        create a parameter with a zero weight otherwise.'''
        for r in range(len(parts)):
            if gold_output[r] == 0:
                continue
            self.parameters.make_gradient_step(features[r], 0., 0, 0.)

    def transform_gold(self, instance, parts, scores, gold_output):
        '''This is a no-op by default. But it's convenient to have it here to
        build latent-variable structured classifiers (e.g. for coreference
        resolution).'''
        loss_inner = 0.
        return loss_inner

    def make_parts_batch(self, instances):
        '''
        Create parts and features for all instances.

        :param instances: list of non-formatted instances
        :return: an InstanceData object containing formatted instances.
        '''
        all_parts = []
        all_gold_parts = []
        all_features = []
        formatted_instances = []

        for instance in instances:
            f_instance = self.format_instance(instance)
            parts = self.make_parts(f_instance)
            gold_parts = parts.get_gold_output()
            if gold_parts is not None:
                gold_parts = np.array(gold_parts, dtype=np.float64)
            features = self.make_features(f_instance, parts)

            formatted_instances.append(f_instance)
            all_parts.append(parts)
            all_gold_parts.append(gold_parts)
            all_features.append(features)

        return InstanceData(formatted_instances, all_parts, all_features,
                            all_gold_parts)

    def preprocess_data(self, train_data):
        '''Preprocess the data before training begins. When training with
        supported features only, the gold features are created up front, the
        parameters are locked and unsupported features are discarded.'''
        if not self.options.only_supported_features:
            return

        logger.info('Building the set of supported features...')
        self.parameters.allow_growth()
        for i in range(len(train_data)):
            instance, parts, features, gold_output = train_data[i]
            self.touch_parameters(parts, features, gold_output)
        self.parameters.stop_growth()

        # This is necessary not to mess up the computation of the squared
        # norm of the feature difference vector in MIRA.
        for i in range(len(train_data)):
            instance, parts, features, gold_output = train_data[i]
            self.remove_unsupported_features(instance, parts, features)
        logger.info('Number of features: %d' % len(self.parameters))

    def train(self, train_instances):
        '''Train with a general online algorithm.

        :param train_instances: list of annotated instances
        '''
        tic = time.time()
        train_data = self.make_parts_batch(train_instances)
        if len(train_data) == 0:
            raise ValueError('No training instances')
        logger.info('Number of train instances: %d' % len(train_data))
        logger.debug('Time to make parts: %f' % (time.time() - tic))

        self.parameters = Parameters(use_average=self.options.use_averaging)
        self.preprocess_data(train_data)
        self.lambda_coeff = 1.0 / (self.options.regularization_constant *
                                   float(len(train_data)))
        for epoch in range(self.options.training_epochs):
            self.train_epoch(epoch, train_data)

        self.parameters.finalize(self.options.training_epochs
                                 * len(train_data))
        self.parameters.stop_growth()

    def _decode_structured_train(self, instance, parts, scores, gold_output,
                                 features, t):
        '''
        Decode the scores for a structured problem at training time.

        Return the predicted output (for each part) and eta.
        '''
        algorithm = self.options.training_algorithm

        inner_loss = self.transform_gold(instance, parts, scores, gold_output)

        # Do the decoding.
        start_decoding = time.time()
        loss = 0.
        if algorithm == 'perceptron':
            predicted_output = self.decoder.decode(instance, parts, scores)
            for r in range(len(parts)):
                self.num_total += 1
                if not nearly_eq_tol(gold_output[r],
                                     predicted_output[r], 1e-6):
                    self.num_mistakes += 1

        elif algorithm == 'mira':
            predicted_output, cost, loss = self.decoder.decode_mira(
                instance, parts, scores, gold_output, old_mira=True)

        elif algorithm in ['svm_mira', 'svm_sgd']:
            predicted_output, cost, loss = \
                self.decoder.decode_cost_augmented(instance, parts, scores,
                                                   gold_output)

        elif algorithm in ['crf_mira', 'crf_sgd']:
            predicted_output, entropy, loss = \
                self.decoder.decode_marginals(instance, parts, scores,
                                              gold_output)
        else:
            raise ValueError('Unknown training algorithm: %s' % algorithm)
        self.time_decoding += time.time() - start_decoding

        # Update the total loss.
        if algorithm != 'perceptron':
            loss -= inner_loss
            if loss < 0.0:
                if loss < -1e-6:
                    logger.warning('Negative loss set to zero: %f' % loss)
                loss = 0.0
            self.total_loss += loss

        # Compute the stepsize.
        if algorithm == 'perceptron':
            eta = 1.0
        elif algorithm in ['mira', 'svm_mira', 'crf_mira']:
            difference = self.make_feature_difference(parts, features,
                                                      gold_output,
                                                      predicted_output)
            squared_norm = difference.get_squared_norm()
            threshold = 1e-9
            if loss < threshold or squared_norm < threshold:
                eta = 0.0
            else:
                eta = loss / squared_norm
            if eta > self.options.regularization_constant:
                eta = self.options.regularization_constant
                self.truncated += 1
        else:
            schedule = self.options.learning_rate_schedule
            if schedule == 'fixed':
                eta = self.options.initial_learning_rate
            elif schedule == 'invsqrt':
                eta = self.options.initial_learning_rate / \
                    np.sqrt(float(t + 1))
            elif schedule == 'inv':
                eta = self.options.initial_learning_rate / (float(t + 1))
            else:
                raise ValueError('Unknown learning rate schedule: %s'
                                 % schedule)

            # Scale the weight vector.
            decay = 1.0 - eta * self.lambda_coeff
            assert decay >= 0.
            self.parameters.scale(decay)

        return predicted_output, eta

    def train_epoch(self, epoch, train_data):
        '''Run one epoch of an online algorithm.

        :param epoch: the number of the epoch, starting from 0
        :param train_data: InstanceData
        '''
        self.time_decoding = 0
        self.time_scores = 0
        self.time_gradient = 0
        start = time.time()

        self.total_loss = 0.
        self.num_mistakes = 0
        self.num_total = 0
        self.truncated = 0
        self.scoring_with_cache = False

        if epoch == 0:
            logger.info('\t'.join(
                ['Lambda: %f' % self.lambda_coeff,
                 'Regularization constant: %f' %
                 self.options.regularization_constant,
                 'Number of instances: %d' % len(train_data)]))
        logger.info(' Iteration #%d' % (epoch + 1))

        # the iteration counter must be totally ordered across updates
        t = len(train_data) * epoch
        train_data.shuffle(self.rng)
        for i in range(len(train_data)):
            instance, parts, features, gold_output = train_data[i]

            start_scores = time.time()
            scores = self.compute_scores(instance, parts, features)
            self.time_scores += time.time() - start_scores

            predicted_output, eta = self._decode_structured_train(
                instance, parts, scores, gold_output, features, t)

            start_gradient = time.time()
            self.make_gradient_step(parts, features, eta, t, gold_output,
                                    predicted_output)
            self.time_gradient += time.time() - start_gradient

            t += 1

        end = time.time()
        logger.info('Time: %f' % (end - start))
        logger.debug('Time to score: %f' % self.time_scores)
        logger.debug('Time to decode: %f' % self.time_decoding)
        logger.debug('Time to do gradient step: %f' % self.time_gradient)
        logger.info('Number of features: %d' % len(self.parameters))

        if self.options.training_algorithm == 'perceptron':
            logger.info('Number of mistakes: %d/%d (%f)' %
                        (self.num_mistakes, self.num_total,
                         float(self.num_mistakes) / max(self.num_total, 1)))
        else:
            sq_norm = self.parameters.get_squared_norm()
            regularization_value = 0.5 * self.lambda_coeff * \
                float(len(train_data)) * sq_norm
            logger.info('\t'.join(
                ['Total Loss: %f' % self.total_loss,
                 'Total Reg: %f' % regularization_value,
                 'Total Loss+Reg: %f' %
                 (self.total_loss + regularization_value),
                 'Squared norm: %f' % sq_norm]))
            if self.options.training_algorithm in ['mira', 'svm_mira']:
                logger.info('Truncated step sizes: %d' % self.truncated)

    def decode_parts(self, instance, parts, scores):
        """
        Return the predicted output.
        """
        return self.decoder.decode(instance, parts, scores)

    def batch_decode(self, instance_data, scores):
        """
        Decode the scores of all instances, in parallel if n_jobs > 1.

        :param instance_data: InstanceData object
        :param scores: list of arrays with the scores of each instance
        :return: list of arrays with the predicted output of each instance
        """
        n_jobs = self.options.n_jobs
        if n_jobs == 1:
            return [self.decode_parts(instance_data.instances[i],
                                      instance_data.parts[i], scores[i])
                    for i in range(len(instance_data))]

        p = Parallel(n_jobs=n_jobs)
        decoded = p(delayed(self.decoder.decode)(instance_data.instances[i],
                                                 instance_data.parts[i],
                                                 scores[i])
                    for i in range(len(instance_data)))
        return decoded

    def run_batch(self, instance_data):
        """
        Predict the output for the given instances. Weights are frozen while
        the batch is scored and decoded.

        :type instance_data: InstanceData
        :return: a list of arrays with the predicted outputs
        """
        scores = []
        zipped = zip(instance_data.instances, instance_data.parts,
                     instance_data.features)
        for instance, inst_parts, inst_features in zipped:
            inst_scores = self.compute_scores(instance, inst_parts,
                                              inst_features)
            scores.append(inst_scores)

        return self.batch_decode(instance_data, scores)

    def predict(self, instances):
        '''Run the structured classifier on unlabeled or labeled instances,
        adding the predicted output to each of them.

        :return: list with the predicted output for each instance
        '''
        tic = time.time()
        self.scoring_with_cache = self.options.use_weight_caching
        data = self.make_parts_batch(instances)

        predictions = []
        batch_index = 0
        while batch_index < len(data):
            next_index = batch_index + self.options.batch_size
            batch_data = data[batch_index:next_index]
            predictions.extend(self.run_batch(batch_data))
            batch_index = next_index

        for instance, parts, output in zip(data.instances, data.parts,
                                           predictions):
            self.label_instance(instance, parts, output)

        toc = time.time()
        logger.info('Number of instances: %d' % len(instances))
        logger.info('Time: %f' % (toc - tic))
        if self.scoring_with_cache:
            logger.info('Weight cache: %d hits, %d misses, %d entries' %
                        (self.parameters.get_caching_weights_hits(),
                         self.parameters.get_caching_weights_misses(),
                         self.parameters.get_caching_weights_size()))
        self.scoring_with_cache = False

        self.evaluate(data, predictions)
        return predictions

    def evaluate(self, instance_data, predictions):
        '''Compute the Hamming accuracy over parts, if gold outputs are
        available. Override this function for task-specific evaluation.

        :return: the accuracy, or None if there is no gold output
        '''
        num_mistakes = 0
        num_total_parts = 0
        for gold_output, predicted_output in zip(instance_data.gold_parts,
                                                 predictions):
            if gold_output is None:
                return None
            for r in range(len(gold_output)):
                if not nearly_eq_tol(gold_output[r],
                                     predicted_output[r], 1e-6):
                    num_mistakes += 1
                num_total_parts += 1

        if num_total_parts == 0:
            return None
        accuracy = float(num_total_parts - num_mistakes) / num_total_parts
        logger.info('Accuracy (parts): %f' % accuracy)
        return accuracy
