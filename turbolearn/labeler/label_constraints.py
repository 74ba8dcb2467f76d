'''Hard constraints on the labels of the modifiers of a head.'''


class LabelConstraints(object):
    '''Task configuration restricting which labelings are legal.

    The decoders only rely on three predicates: is_allowed (per arc),
    is_unique (a label may be used at most once among the modifiers of the
    same head) and transition_allowed (between labels of consecutive
    modifiers of the same head). Instances are built once from external
    dictionaries and never modified afterwards.'''
    def __init__(self, num_labels, unique_labels=None,
                 forbidden_transitions=None, allowed_labels_by_tag=None):
        """
        :param num_labels: size of the label set; labels are 0..num_labels-1
        :param unique_labels: labels that can occur at most once per head
        :param forbidden_transitions: (label, next_label) pairs that cannot
            be assigned to consecutive modifiers of the same head
        :param allowed_labels_by_tag: dictionary mapping a modifier POS tag id
            to the labels its arc may take; tags not in it allow any label
        """
        self.num_labels = num_labels
        self.unique_labels = frozenset(unique_labels or [])
        self.forbidden_transitions = frozenset(forbidden_transitions or [])
        self.allowed_labels_by_tag = {}
        if allowed_labels_by_tag is not None:
            for tag, labels in allowed_labels_by_tag.items():
                self.allowed_labels_by_tag[tag] = frozenset(labels)

        self._check_labels(self.unique_labels)
        for pair in self.forbidden_transitions:
            self._check_labels(pair)
        for labels in self.allowed_labels_by_tag.values():
            self._check_labels(labels)

    def _check_labels(self, labels):
        for label in labels:
            if label < 0 or label >= self.num_labels:
                raise ValueError('Label %d out of range [0, %d)' %
                                 (label, self.num_labels))

    def is_allowed(self, instance, modifier, label):
        '''Whether the arc to this modifier can take the label.'''
        tag = instance.get_tag(modifier)
        if tag not in self.allowed_labels_by_tag:
            return True
        return label in self.allowed_labels_by_tag[tag]

    def get_candidate_labels(self, instance, modifier):
        '''Return the sorted list of labels allowed for a modifier.'''
        return [label for label in range(self.num_labels)
                if self.is_allowed(instance, modifier, label)]

    def is_unique(self, label):
        return label in self.unique_labels

    def transition_allowed(self, previous_label, label):
        return (previous_label, label) not in self.forbidden_transitions
