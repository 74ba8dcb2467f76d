import argparse


training_algorithms = ['perceptron', 'mira', 'svm_mira', 'svm_sgd',
                       'crf_mira', 'crf_sgd']
learning_rate_schedules = ['fixed', 'invsqrt', 'inv']


class OptionParser(object):
    '''Parser for the command line arguments used in structured classifiers.'''
    def __init__(self, prog=None, description=None):
        """
        `prog` and `description` are arguments for the argparse parser.
        """
        parser = argparse.ArgumentParser(prog=prog, description=description)

        mode = parser.add_mutually_exclusive_group(required=True)
        mode.add_argument('--train', action='store_true',
                          help='Training mode')
        mode.add_argument('--test', action='store_true',
                          help='Test/running mode')
        parser.add_argument('--model_path', type=str, default=None,
                            help='Path to the model.')
        parser.add_argument('--training_algorithm', type=str,
                            default='svm_mira', choices=training_algorithms,
                            help='Online learning algorithm.')
        parser.add_argument('--training_epochs', type=int, default=10,
                            help='Number of passes over the training data.')
        parser.add_argument('--regularization_constant', type=float,
                            default=1e12,
                            help='Regularization parameter C.')
        parser.add_argument('--no_averaging', dest='use_averaging',
                            action='store_false',
                            help='Do not average the weight vector at the end '
                                 'of training.')
        parser.add_argument('--only_supported_features', action='store_true',
                            help='Only use features that occur in the gold '
                                 'outputs of the training data.')
        parser.add_argument('--learning_rate_schedule', type=str,
                            default='invsqrt',
                            choices=learning_rate_schedules,
                            help='Learning rate schedule for SGD.')
        parser.add_argument('--initial_learning_rate', type=float, default=.01,
                            help='Initial learning rate for SGD.')
        parser.add_argument('--use_weight_caching', action='store_true',
                            help='Cache feature-label weights when scoring '
                                 'with fixed weights.')
        parser.add_argument('--batch_size', type=int, default=64,
                            help='Number of instances per batch at inference '
                                 'time.')
        parser.add_argument('--n_jobs', type=int, default=1,
                            help='Number of parallel jobs used to decode '
                                 'batches at inference time.')
        parser.add_argument('-v', '--verbose', action='store_true',
                            help='Verbose mode with some extra information '
                                 'about the models')
        parser.add_argument('--seed', type=int, default=6,
                            help='Random seed')

        self.parser = parser

    def parse_args(self, args=None):
        return self.parser.parse_args(args)
