import numpy as np


class DependencyLabelerPart(object):
    """
    Base class for dependency labeler parts
    """
    __slots__ = 'head', 'modifier'

    def __init__(self):
        raise NotImplementedError('Abstract class')

    def __str__(self):
        nodes = [('h', self.head), ('m', self.modifier)]
        if hasattr(self, 'sibling'):
            nodes.append(('s', self.sibling))
        if hasattr(self, 'label'):
            nodes.append(('l', self.label))
        if hasattr(self, 'modifier_label'):
            nodes.append(('lm', self.modifier_label))
            nodes.append(('ls', self.sibling_label))

        nodes_strings = ['{}={}'.format(node[0], node[1]) for node in nodes]
        str_ = self.__class__.__name__ + '(' + ', '.join(nodes_strings) + ')'
        return str_


class LabeledArc(DependencyLabelerPart):
    __slots__ = 'label',

    def __init__(self, head=-1, modifier=-1, label=-1):
        self.head = head
        self.modifier = modifier
        self.label = label


class LabeledSibling(DependencyLabelerPart):
    """
    Pair of labels of two consecutive modifiers of the same head.
    """
    __slots__ = 'sibling', 'modifier_label', 'sibling_label'

    def __init__(self, head=-1, modifier=-1, sibling=-1, modifier_label=-1,
                 sibling_label=-1):
        self.head = head
        self.modifier = modifier
        self.sibling = sibling
        self.modifier_label = modifier_label
        self.sibling_label = sibling_label


class DependencyLabelerParts(object):
    def __init__(self, instance, constraints, use_siblings=False):
        """
        A DependencyLabelerParts object stores all the candidate labeling
        decisions for an instance whose tree is fixed.

        Labeled arcs come first, grouped by modifier, with one part for each
        candidate label of the arc. If use_siblings is True, they are
        followed by sibling parts, one for each allowed pair of labels of
        consecutive modifiers of the same head.

        :param instance: a DependencyLabelerInstance
        :param constraints: a LabelConstraints object
        :param use_siblings: whether to create LabeledSibling parts
        """
        self.parts = []
        self.use_siblings = use_siblings

        # arc_labels[m] and arc_indices[m] list the candidate labels of the
        # arc to m and the indices of the corresponding parts
        self.arc_labels = {}
        self.arc_indices = {}

        # sibling_indices[(m, s)] maps (label_m, label_s) to a part index
        self.sibling_indices = {}

        # modifiers of each head in left-to-right order
        self.modifiers_by_head = {}

        self.num_arcs = 0
        self.num_siblings = 0

        self.make_parts(instance, constraints)
        self.gold_parts = self._make_gold_output(instance)

    def __len__(self):
        return len(self.parts)

    def __getitem__(self, item):
        return self.parts[item]

    def __iter__(self):
        return iter(self.parts)

    def make_parts(self, instance, constraints):
        """
        Create all the parts to represent the instance
        """
        for m in range(1, len(instance)):
            h = instance.get_head(m)
            self.modifiers_by_head.setdefault(h, []).append(m)

            labels = constraints.get_candidate_labels(instance, m)
            self.arc_labels[m] = labels
            self.arc_indices[m] = []
            for label in labels:
                self.arc_indices[m].append(len(self.parts))
                self.parts.append(LabeledArc(h, m, label))

        self.num_arcs = len(self.parts)

        if self.use_siblings:
            for h in self.heads():
                modifiers = self.modifiers_by_head[h]
                for m, s in zip(modifiers[:-1], modifiers[1:]):
                    index = {}
                    for label_m in self.arc_labels[m]:
                        for label_s in self.arc_labels[s]:
                            if not constraints.transition_allowed(label_m,
                                                                  label_s):
                                continue
                            index[(label_m, label_s)] = len(self.parts)
                            self.parts.append(
                                LabeledSibling(h, m, s, label_m, label_s))
                    self.sibling_indices[(m, s)] = index

        self.num_siblings = len(self.parts) - self.num_arcs

    def _make_gold_output(self, instance):
        """
        Return the gold output as a list of 0/1 values, or None if the
        instance is not annotated.
        """
        if instance.relations is None:
            return None

        gold = [0.] * len(self.parts)
        for r, part in enumerate(self.parts):
            if isinstance(part, LabeledArc):
                if instance.get_relation(part.modifier) == part.label:
                    gold[r] = 1.
            elif instance.get_relation(part.modifier) == \
                    part.modifier_label and \
                    instance.get_relation(part.sibling) == part.sibling_label:
                gold[r] = 1.
        return gold

    def get_gold_output(self):
        return self.gold_parts

    def heads(self):
        """Return the heads with at least one modifier, in increasing order."""
        return sorted(self.modifiers_by_head)

    def get_modifiers(self, head):
        return self.modifiers_by_head.get(head, [])

    def get_arc_labels(self, modifier):
        return self.arc_labels[modifier]

    def get_arc_indices(self, modifier):
        return self.arc_indices[modifier]

    def get_sibling_indices(self, modifier, sibling):
        """
        Return a dictionary mapping label pairs of two consecutive modifiers
        to part indices; empty if sibling parts are not used.
        """
        return self.sibling_indices.get((modifier, sibling), {})

    def get_labels(self, output):
        """
        Return the label with highest value in the output for each modifier.

        :param output: array with one value per part (either 0/1 or marginals)
        :return: a list of labels with -1 for the root
        """
        labels = [-1] * (len(self.arc_labels) + 1)
        for m, indices in self.arc_indices.items():
            if not indices:
                continue
            values = np.asarray(output)[indices]
            labels[m] = self.arc_labels[m][int(values.argmax())]
        return labels
