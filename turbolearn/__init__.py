from .classifier.parameters import Parameters, FeatureVector
from .classifier.structured_decoder import StructuredDecoder, DecodingError
from .classifier.structured_classifier import StructuredClassifier
from .labeler.dependency_labeler import DependencyLabeler
from .labeler.dependency_labeler_decoder import DependencyLabelerDecoder
from .labeler.dependency_labeler_instance import DependencyLabelerInstance
from .labeler.dependency_labeler_options import DependencyLabelerOptionParser
from .labeler.label_constraints import LabelConstraints
