from ..classifier.options import OptionParser


class DependencyLabelerOptionParser(OptionParser):
    '''Options for the dependency labeler.'''
    def __init__(self):
        super(DependencyLabelerOptionParser, self).__init__(
            prog='Turbo dependency labeler.',
            description='Trains/test a labeler of dependency arcs.')
        parser = self.parser

        parser.add_argument('--use_siblings', action='store_true',
                            help='Score the labels of consecutive modifiers '
                                 'of the same head jointly.')
