from ..classifier.instance import Instance


class DependencyLabelerInstance(Instance):
    """A sentence with a fixed unlabeled dependency tree, whose arcs are to be
    labeled.

    All fields are numeric ids produced by external dictionaries. Position 0
    is the root; its head and relation are -1.
    """
    def __init__(self, words, tags, heads, relations=None):
        """
        :param words: list of word ids, starting with the root
        :param tags: list of POS tag ids, starting with the root
        :param heads: list with the head position of each token
        :param relations: list with the label id of each token's arc, or None
            if the instance is not annotated
        """
        Instance.__init__(self, words, relations)
        self.words = words
        self.tags = tags
        self.heads = heads
        self.relations = relations

    def __len__(self):
        return len(self.words)

    def get_word(self, i):
        return self.words[i]

    def get_tag(self, i):
        return self.tags[i]

    def get_head(self, i):
        return self.heads[i]

    def get_relation(self, i):
        return self.relations[i]

    def get_modifiers(self, head):
        """Return the modifiers of a head, in left-to-right order."""
        return [m for m in range(1, len(self)) if self.heads[m] == head]
